"""Utility modules for the Interview Practice core."""

from .logging import setup_logging, get_logger
from .exceptions import (
    InterviewPracticeError,
    ConfigurationError,
    LLMProviderError,
    UpstreamCallFailedError,
    StructuredOutputParseError,
    StorageError,
    DataIntegrityError,
    IndexNotBuiltError,
    EmbeddingDimensionError,
    EmbeddingError,
    RagUnavailableError,
    ModelLoadError,
    RagInitializationError,
    RagInitializationTimeout,
    RagPreviouslyFailedError,
    AgentError,
    NoPendingTurnError,
    TurnAlreadyAnsweredError,
    ValidationError,
)
from .dedup import RequestDeduplicator
from .retry import RetryPolicy, RetryOutcome

__all__ = [
    "setup_logging",
    "get_logger",
    "InterviewPracticeError",
    "ConfigurationError",
    "LLMProviderError",
    "UpstreamCallFailedError",
    "StructuredOutputParseError",
    "StorageError",
    "DataIntegrityError",
    "IndexNotBuiltError",
    "EmbeddingDimensionError",
    "EmbeddingError",
    "RagUnavailableError",
    "ModelLoadError",
    "RagInitializationError",
    "RagInitializationTimeout",
    "RagPreviouslyFailedError",
    "AgentError",
    "NoPendingTurnError",
    "TurnAlreadyAnsweredError",
    "ValidationError",
    "RequestDeduplicator",
    "RetryPolicy",
    "RetryOutcome",
]
