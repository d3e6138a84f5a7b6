"""Custom exceptions for the Interview Practice core."""

from typing import Optional, Any, Dict


class InterviewPracticeError(Exception):
    """Base exception for all Interview Practice errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the exception."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(InterviewPracticeError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the configuration error.

        Args:
            message: Error message
            config_key: Optional configuration key that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "CONFIG_ERROR", details)
        self.config_key = config_key


class LLMProviderError(InterviewPracticeError):
    """Exception raised for language model provider errors."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None,
                 error_code: str = "LLM_PROVIDER_ERROR"):
        """Initialize the LLM provider error.

        Args:
            message: Error message
            provider_name: Optional name of the LLM provider that caused the error
            details: Optional additional error details
            error_code: Error code, overridden by subclasses
        """
        super().__init__(message, error_code, details)
        self.provider_name = provider_name


class UpstreamCallFailedError(LLMProviderError):
    """Exception raised when a call to the text-generation service fails.

    The message carries the transport or HTTP status text so that
    ``RetryPolicy.is_retryable`` can classify it.
    """

    def __init__(self, message: str, provider_name: Optional[str] = None, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        """Initialize the upstream call error.

        Args:
            message: Error message
            provider_name: Optional provider name
            status_code: Optional HTTP status code returned by the upstream
            details: Optional additional error details
        """
        super().__init__(message, provider_name, details, error_code="UPSTREAM_CALL_FAILED")
        self.status_code = status_code


class StructuredOutputParseError(InterviewPracticeError):
    """Exception raised when a model response does not match the expected JSON schema."""

    def __init__(self, message: str, raw_response: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STRUCTURED_OUTPUT_PARSE_FAILED", details)
        self.raw_response = raw_response


class StorageError(InterviewPracticeError):
    """Exception raised for storage-related errors."""

    def __init__(self, message: str, file_path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the storage error.

        Args:
            message: Error message
            file_path: Optional database or file path that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "STORAGE_ERROR", details)
        self.file_path = file_path


class DataIntegrityError(InterviewPracticeError):
    """Exception raised for data integrity violations."""

    def __init__(self, message: str, data_type: Optional[str] = None, constraint: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the data integrity error.

        Args:
            message: Error message
            data_type: Optional type of data that violated integrity
            constraint: Optional constraint that was violated
            details: Optional additional error details
        """
        super().__init__(message, "DATA_INTEGRITY_ERROR", details)
        self.data_type = data_type
        self.constraint = constraint


class IndexNotBuiltError(InterviewPracticeError):
    """Exception raised when searching before the vector index was built."""

    def __init__(self, message: str = "Vector index has not been built", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INDEX_NOT_BUILT", details)


class EmbeddingDimensionError(InterviewPracticeError):
    """Exception raised when a query vector does not match the index dimension."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "EMBEDDING_DIMENSION_ERROR", details)
        self.expected = expected
        self.actual = actual


class EmbeddingError(InterviewPracticeError):
    """Exception raised when the embedding model fails to vectorize text."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "EMBEDDING_ERROR", details)


class RagUnavailableError(InterviewPracticeError):
    """Base class for errors meaning "RAG unavailable, proceed without context"."""

    def __init__(self, message: str, error_code: str = "RAG_UNAVAILABLE", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class ModelLoadError(RagUnavailableError):
    """Exception raised when the embedding model cannot be loaded."""

    def __init__(self, message: str, model_dir: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the model load error.

        Args:
            message: Error message
            model_dir: Optional model directory that failed to load
            details: Optional additional error details
        """
        super().__init__(message, "MODEL_LOAD_ERROR", details)
        self.model_dir = model_dir


class RagInitializationError(RagUnavailableError):
    """Exception raised when RAG initialization fails for a reason other than model loading."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RAG_INITIALIZATION_ERROR", details)


class RagInitializationTimeout(RagUnavailableError):
    """Exception raised when RAG initialization exceeds its time budget."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RAG_INITIALIZATION_TIMEOUT", details)
        self.timeout_seconds = timeout_seconds


class RagPreviouslyFailedError(RagUnavailableError):
    """Exception raised on every call after RAG initialization failed once."""

    def __init__(self, message: str = "RAG initialization previously failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RAG_PREVIOUSLY_FAILED", details)


class AgentError(InterviewPracticeError):
    """Exception raised for agent-related errors."""

    def __init__(self, message: str, agent_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the agent error.

        Args:
            message: Error message
            agent_name: Optional name of the agent that caused the error
            details: Optional additional error details
        """
        super().__init__(message, "AGENT_ERROR", details)
        self.agent_name = agent_name


class NoPendingTurnError(InterviewPracticeError):
    """Exception raised when an answer arrives but no turn is waiting for one."""

    def __init__(self, message: str = "No pending conversation turn", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NO_PENDING_TURN", details)


class TurnAlreadyAnsweredError(InterviewPracticeError):
    """Exception raised when a turn's answer or analysis would be overwritten."""

    def __init__(self, message: str, field_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TURN_ALREADY_ANSWERED", details)
        self.field_name = field_name


class ValidationError(InterviewPracticeError):
    """Exception raised for data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize the validation error.

        Args:
            message: Error message
            field_name: Optional field name that failed validation
            details: Optional additional error details
        """
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field_name = field_name
