"""
grc/llm/exceptions.py - LLM-specific exceptions

Custom exceptions for LLM operations to enable retry, failover and
terminal-failure reporting.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .types import FailedAttempt, Provider, TaskType


class LLMError(Exception):
    """
    Base exception for LLM operations.

    `recoverable` is False for errors that another attempt against the same
    provider cannot fix; adapters stop retrying on those.
    """

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class ConfigurationError(LLMError):
    """Raised when the LLM layer is missing required configuration."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class ProviderUnavailableError(LLMError):
    """Raised when a provider cannot be reached or is not configured."""

    def __init__(
        self,
        provider: str,
        message: Optional[str] = None,
    ):
        msg = message or f"LLM provider '{provider}' is unavailable"
        super().__init__(msg, recoverable=False)
        self.provider = provider


class ValidationError(LLMError):
    """Raised when a structured response doesn't match the requested schema."""

    def __init__(
        self,
        message: str = "Response validation failed",
        raw_response: Optional[str] = None,
    ):
        super().__init__(message, recoverable=True)
        self.raw_response = raw_response


class LLMTimeoutError(LLMError):
    """Raised when a single vendor call exceeds its timeout."""

    def __init__(self, timeout_seconds: float):
        message = f"Request timed out after {timeout_seconds}s"
        super().__init__(message, recoverable=True)
        self.timeout_seconds = timeout_seconds


class TransientError(LLMError):
    """Raised for vendor errors that may succeed on retry (429, 5xx, overload)."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, recoverable=True)
        self.original_error = original_error


class ProviderExhaustedError(LLMError):
    """Raised when every local retry of one provider failed."""

    def __init__(
        self,
        provider: "Provider",
        adapter_name: str,
        operation: str,
        attempts: int,
        last_error: Optional[BaseException],
        latency_ms: int = 0,
    ):
        last_message = error_message(last_error)
        message = f"[{adapter_name}] {operation} failed after {attempts} attempts: {last_message}"
        super().__init__(message, recoverable=True)
        self.provider = provider
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        self.latency_ms = latency_ms


class AllProvidersFailedError(LLMError):
    """Raised when both the primary and the fallback provider failed."""

    def __init__(
        self,
        task_type: "TaskType",
        primary: "Provider",
        fallback: "Provider",
        primary_error: BaseException,
        fallback_error: BaseException,
        attempts: Tuple["FailedAttempt", ...] = (),
    ):
        message = (
            f"All providers failed for task type {task_type.value}. "
            f"Primary ({primary.value}): {error_message(primary_error)}. "
            f"Fallback ({fallback.value}): {error_message(fallback_error)}"
        )
        super().__init__(message, recoverable=False)
        self.task_type = task_type
        self.primary = primary
        self.fallback = fallback
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        self.attempts = attempts


def error_message(error: Optional[BaseException]) -> str:
    if error is None:
        return "unknown error"
    if isinstance(error, LLMError):
        return error.message
    return str(error) or error.__class__.__name__
