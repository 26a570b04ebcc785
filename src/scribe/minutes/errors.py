"""Error taxonomy for minutes generation and versioning.

Transient classes (ProviderError, InvocationTimeoutError) are retried by the
InvocationGuard. Everything else is surfaced to the caller on first sight.
"""

from __future__ import annotations

TIMEOUT_USER_MESSAGE = (
    "The request took too long to process. Please try again with a shorter input."
)
GENERIC_USER_MESSAGE = "Failed to generate meeting minutes. Please try again later."

RAW_TEXT_PREVIEW_CHARS = 500


class MinutesError(Exception):
    """Base class for all minutes subsystem errors."""


class ConfigurationError(MinutesError):
    """A provider credential is missing or was rejected. Never retried."""


class InvalidInputError(MinutesError, ValueError):
    """Raw notes are empty or exceed the accepted length."""


class InvocationTimeoutError(MinutesError, TimeoutError):
    """A single guarded attempt exceeded its time budget."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Operation timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ProviderError(MinutesError):
    """Transient failure reported by the AI provider.

    Args:
        message: Human-readable description.
        status_code: HTTP status reported by the provider, if any.
        retry_after_ms: Provider-requested wait before the next attempt
            (rate limiting). Overrides the computed backoff when set.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_ms: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_ms = retry_after_ms


class UnparseableResponseError(MinutesError):
    """No JSON object could be recovered from the provider's text."""

    def __init__(self, raw_text: str, message: str = "Failed to parse AI response as JSON") -> None:
        super().__init__(message)
        self.raw_text = raw_text[:RAW_TEXT_PREVIEW_CHARS]


class GenerationFailed(MinutesError):
    """Terminal failure after the guard exhausted its attempts.

    The terminal attempt error is chained as ``__cause__``.
    """

    def __init__(self, *, timed_out: bool) -> None:
        self.timed_out = timed_out
        self.user_message = TIMEOUT_USER_MESSAGE if timed_out else GENERIC_USER_MESSAGE
        super().__init__(self.user_message)


class NotFoundError(MinutesError, LookupError):
    """The referenced minutes record does not exist."""


class AccessDeniedError(MinutesError, PermissionError):
    """The caller does not own the referenced minutes record."""
