"""
Runtime configuration for the assistant
Reads environment variables (optionally from .env files) into a Settings object
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from rancho_assistant.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_API_URL = (
    "https://router.huggingface.co/hf-inference/models/"
    "sentence-transformers/all-MiniLM-L6-v2/pipeline/feature-extraction"
)
DEFAULT_LLM_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_LLM_MODEL = "llama-3.3-70b-versatile"


def load_env_files() -> None:
    """Load .env from the working directory, then the repo root. Never overrides set vars."""
    load_dotenv(override=False)
    repo_root_env = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=repo_root_env, override=False)


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))


# Safe logging helpers
def host_only(url: Optional[str]) -> str:
    if not url:
        return ""
    after_scheme = url.split("://", 1)[-1]
    return after_scheme.split("/", 1)[0]


def present(flag: Optional[str]) -> str:
    return "set" if flag else "unset"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"⚠️ Invalid integer for {name}; using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"⚠️ Invalid number for {name}; using {default}")
        return default


@dataclass
class Settings:
    """All tunables and secrets for one process"""
    pinecone_api_key: str = ""
    pinecone_index_name: str = "rancho-cordova"
    pinecone_index_host: str = ""
    groq_api_key: str = ""
    huggingface_api_key: str = ""
    supabase_url: str = ""
    supabase_service_key: str = ""

    embedding_api_url: str = DEFAULT_EMBEDDING_API_URL
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1024
    sql_rpc_function: str = "execute_sql"

    top_k: int = 6
    context_match_limit: int = 4
    context_char_budget: int = 6000
    http_timeout: int = 20
    model_loading_estimate: int = 20

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    rate_limit_enabled: bool = True
    rate_limit_chat: str = "30/minute"

    def missing_secrets(self) -> List[str]:
        missing = []
        if not self.pinecone_api_key:
            missing.append("PINECONE_API_KEY")
        if not self.groq_api_key:
            missing.append("GROQ_API_KEY")
        if not self.huggingface_api_key:
            missing.append("HUGGINGFACE_API_KEY")
        return missing

    def require(self) -> None:
        """Fail fast when a required secret is absent"""
        missing = self.missing_secrets()
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

    @property
    def analytics_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


def load_settings() -> Settings:
    """Build Settings from the environment"""
    load_env_files()
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "*")
    cors_origins = ["*"] if origins_env.strip() == "*" else [o.strip() for o in origins_env.split(",") if o.strip()]
    return Settings(
        pinecone_api_key=os.getenv("PINECONE_API_KEY", ""),
        pinecone_index_name=os.getenv("PINECONE_INDEX_NAME", "rancho-cordova"),
        pinecone_index_host=os.getenv("PINECONE_INDEX_HOST", ""),
        groq_api_key=os.getenv("GROQ_API_KEY", ""),
        huggingface_api_key=os.getenv("HUGGINGFACE_API_KEY") or os.getenv("HF_TOKEN", ""),
        supabase_url=os.getenv("SUPABASE_URL", "").strip().rstrip("/"),
        supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip(),
        embedding_api_url=os.getenv("EMBEDDING_API_URL", DEFAULT_EMBEDDING_API_URL),
        llm_base_url=os.getenv("LLM_BASE_URL", DEFAULT_LLM_BASE_URL),
        llm_model=os.getenv("LLM_MODEL", DEFAULT_LLM_MODEL),
        llm_temperature=_env_float("LLM_TEMPERATURE", 0.2),
        llm_max_tokens=_env_int("LLM_MAX_TOKENS", 1024),
        sql_rpc_function=os.getenv("SQL_RPC_FUNCTION", "execute_sql"),
        context_char_budget=max(500, _env_int("CONTEXT_CHAR_BUDGET", 6000)),
        http_timeout=max(1, _env_int("HTTP_TIMEOUT_SEC", 20)),
        model_loading_estimate=_env_int("MODEL_LOADING_ESTIMATE_SEC", 20),
        cors_origins=cors_origins,
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
        rate_limit_chat=os.getenv("RATE_LIMIT_CHAT", "30/minute"),
    )


def log_runtime_config(settings: Settings) -> None:
    logger.info(
        "Runtime config: LOG_LEVEL=%s PINECONE_INDEX=%s PINECONE_API_KEY=%s GROQ_API_KEY=%s "
        "HUGGINGFACE_API_KEY=%s LLM_HOST=%s SUPABASE_HOST=%s",
        os.getenv("LOG_LEVEL", "INFO").upper(),
        settings.pinecone_index_name,
        present(settings.pinecone_api_key),
        present(settings.groq_api_key),
        present(settings.huggingface_api_key),
        host_only(settings.llm_base_url),
        host_only(settings.supabase_url),
    )
