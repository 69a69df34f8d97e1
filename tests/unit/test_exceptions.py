"""
Unit tests for the exception hierarchy
"""

from core.exceptions import (
    AuthenticationError,
    NetworkError,
    NonRetryableError,
    RateLimitError,
    RetryableError,
    SnapshotException,
)


def test_retryable_errors_are_markers_only():
    error = NetworkError(
        "Server error after 3 attempts",
        context={"status_code": 503, "retry_count": 3}
    )

    assert isinstance(error, RetryableError)
    assert isinstance(error, SnapshotException)
    assert error.status_code == 503
    assert not hasattr(error, "max_retries")
    assert not hasattr(error, "retry_delay")


def test_rate_limit_keeps_retry_after():
    error = RateLimitError("Rate limit exceeded", context={"status_code": 429}, retry_after=30.0)

    assert isinstance(error, RetryableError)
    assert error.retry_after == 30.0
    assert error.context["retry_after"] == 30.0


def test_to_dict_carries_cause():
    cause = ValueError("bad json")
    error = AuthenticationError("Authentication required", context={"status_code": 401}, original_exception=cause)

    data = error.to_dict()

    assert isinstance(error, NonRetryableError)
    assert data["error_type"] == "AuthenticationError"
    assert data["message"] == "Authentication required"
    assert data["context"]["status_code"] == 401
    assert data["original_error"] == "bad json"
    assert error.__cause__ is cause
