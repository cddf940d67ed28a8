"""
Error taxonomy for the assistant request chain
"""

from typing import Optional


class AssistantError(Exception):
    """Base class for all assistant failures"""


class ConfigurationError(AssistantError):
    """A required secret or setting is missing"""


class ModelLoadingError(AssistantError):
    """The embedding endpoint is still warming up (HTTP 503 upstream)"""

    def __init__(self, estimated_time: float, message: str = "Model loading"):
        super().__init__(message)
        self.estimated_time = estimated_time


class UpstreamError(AssistantError):
    """Any other non-OK response from an external service"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EmbeddingError(UpstreamError):
    pass


class VectorSearchError(UpstreamError):
    pass


class CompletionError(UpstreamError):
    pass


class AnalyticsError(AssistantError):
    """SQL generation or execution failed; terminal for the analytics path"""

    def __init__(self, message: str, sql: Optional[str] = None):
        super().__init__(message)
        self.sql = sql
