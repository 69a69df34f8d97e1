"""
Custom exceptions for the snapshot pipeline with structured error context.

Each exception carries a context dictionary for debugging and for the
error payloads returned by the HTTP surface.

Exception Hierarchy:
    SnapshotException (base)
    ├── ConfigurationError
    ├── SourceAPIError
    │   ├── AuthenticationError
    │   ├── ResourceNotFoundError
    │   ├── RateLimitError
    │   └── NetworkError
    ├── SchemaFetchError
    ├── PlanError
    ├── StructureError
    ├── WriteError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class SnapshotException(Exception):
    """
    Base exception for all snapshot-related errors.
    
    Attributes:
        message: Human-readable error message
        context: Additional context information (base id, table, state, etc.)
        original_exception: The original exception that was caught (if any)
    """
    
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()
        
        self.context["error_timestamp"] = self.timestamp.isoformat()
        
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception
    
    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"
        
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"
        
        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"
        
        return base_msg
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigurationError(SnapshotException):
    """
    Raised when a run cannot start: missing credential, missing base id,
    or an invalid setting.
    """
    pass


# ============================================================================
# Source API Errors
# ============================================================================

class SourceAPIError(SnapshotException):
    """
    Exception raised when a request to the source API fails.
    
    Context should include:
        - api_url: The endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated)
        - retry_count: Number of attempts made
    """
    
    @property
    def status_code(self) -> Optional[int]:
        return self.context.get("status_code")


class SchemaFetchError(SnapshotException):
    """
    Exception raised when the base schema cannot be retrieved or parsed.
    
    Context should include:
        - base_id: The base whose schema was requested
    """
    pass


# ============================================================================
# Engine Errors
# ============================================================================

class PlanError(SnapshotException):
    """
    Exception raised when the schema plan cannot be built.
    
    Context should include:
        - table_id / table_name: The table being planned
        - field_id / field_name: The offending field (if applicable)
    """
    pass


class StructureError(SnapshotException):
    """
    Exception raised when metadata, data or join tables cannot be created.
    
    Context should include:
        - db_path: Path of the snapshot file
    """
    pass


class WriteError(SnapshotException):
    """
    Exception raised when a batch of rows cannot be written.
    
    Context should include:
        - table_name: Storage table name
        - batch_index: Index of the failed batch
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(SnapshotException):
    """
    Mixin for errors that should trigger retry logic.
    
    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)

    Attempt counts and delays come from settings (MAX_RETRIES, RETRY_DELAY).
    """
    pass


class NonRetryableError(SnapshotException):
    """
    Mixin for errors that should NOT trigger retry logic.
    
    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


# ============================================================================
# Specific Source API Errors
# ============================================================================

class NetworkError(RetryableError, SourceAPIError):
    """Network-related errors and server errors that should be retried."""
    pass


class RateLimitError(RetryableError, SourceAPIError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""
    
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after
        if retry_after:
            self.context["retry_after"] = retry_after


class AuthenticationError(NonRetryableError, SourceAPIError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


class ResourceNotFoundError(NonRetryableError, SourceAPIError):
    """Resource not found errors (HTTP 404) that should not be retried."""
    pass
