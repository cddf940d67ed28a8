"""
Process-wide service context
Built once from Settings and handed explicitly to the router
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from rancho_assistant.config import Settings, load_settings, log_runtime_config
from rancho_assistant.embedder import HuggingFaceEmbedder
from rancho_assistant.llm import ChatCompleter
from rancho_assistant.prompts import PromptBuilder
from rancho_assistant.sql_executor import SupabaseSqlExecutor
from rancho_assistant.vector_index import PineconeIndex

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    embedder: HuggingFaceEmbedder
    index: PineconeIndex
    sql: SupabaseSqlExecutor
    llm: ChatCompleter
    prompts: PromptBuilder = field(default_factory=PromptBuilder)


def build_service_context(settings: Settings) -> ServiceContext:
    """Construct every client. Raises ConfigurationError if a required secret is missing."""
    settings.require()
    ctx = ServiceContext(
        settings=settings,
        embedder=HuggingFaceEmbedder(
            api_key=settings.huggingface_api_key,
            url=settings.embedding_api_url,
            timeout=settings.http_timeout,
            loading_estimate=settings.model_loading_estimate,
        ),
        index=PineconeIndex(
            api_key=settings.pinecone_api_key,
            index_name=settings.pinecone_index_name,
            index_host=settings.pinecone_index_host,
            timeout=settings.http_timeout,
        ),
        sql=SupabaseSqlExecutor(
            supabase_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            function_name=settings.sql_rpc_function,
            timeout=settings.http_timeout,
        ),
        llm=ChatCompleter(
            api_key=settings.groq_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        ),
    )
    if not settings.analytics_configured:
        logger.info("ℹ️ Supabase not configured; analytics and ticket lookups will report a configuration error")
    logger.info("✅ Service context initialized")
    return ctx


_cached_context: Optional[ServiceContext] = None


def get_service_context() -> ServiceContext:
    """Lazily build and cache the context for the lifetime of the process"""
    global _cached_context
    if _cached_context is None:
        settings = load_settings()
        log_runtime_config(settings)
        _cached_context = build_service_context(settings)
    return _cached_context


def reset_service_context() -> None:
    global _cached_context
    _cached_context = None
