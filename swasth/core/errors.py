"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (Gemini API key, user store)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
The UpstreamError family is internal to the chat proxy: every subclass is retryable
and none of them reaches an API caller.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. the Gemini API key) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UpstreamError(Exception):
    """Base class for a failed attempt against the generative language API."""


class TransportError(UpstreamError):
    """Network unreachable, connection reset or timeout."""


class UpstreamStatusError(UpstreamError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP error! status: {status_code}")


class UpstreamShapeError(UpstreamError):
    """Upstream answered 2xx but the body lacks the expected candidate text (e.g. blocked)."""


class ChatCancelledError(Exception):
    """Raised when the caller's cancellation signal fires mid-request."""
