import os

# Must be set before rancho_assistant.app is imported
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from unittest.mock import AsyncMock, MagicMock

from rancho_assistant.config import Settings
from rancho_assistant.data_models import RetrievalMatch, SqlResult
from rancho_assistant.prompts import PromptBuilder
from rancho_assistant.services import ServiceContext


@pytest.fixture
def settings():
    return Settings(
        pinecone_api_key="pc-key",
        groq_api_key="groq-key",
        huggingface_api_key="hf-key",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        pinecone_index_host="rancho-idx.svc.pinecone.io",
    )


@pytest.fixture
def ctx(settings):
    """ServiceContext whose network-facing members are mocks"""
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[0.01] * 384)
    index = MagicMock()
    index.query = AsyncMock(return_value=[])
    sql = MagicMock()
    sql.execute = AsyncMock(return_value=SqlResult(sql="SELECT 1", rows=[], tables=[]))
    llm = MagicMock()
    llm.complete = AsyncMock(return_value="")
    return ServiceContext(settings=settings, embedder=embedder, index=index, sql=sql, llm=llm, prompts=PromptBuilder())


def make_match(text, source="smud-rates.pdf", score=0.9):
    return RetrievalMatch(text=text, source=source, score=score)
