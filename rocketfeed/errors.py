"""Error types raised by the Rocket.Chat client and the polling core."""

from typing import Optional


class ChatError(Exception):
    """Base class for every error raised while talking to the chat service"""
    pass


class AuthError(ChatError):
    """Raised when login fails; fatal to stream startup"""
    pass


class TransportError(ChatError):
    """Network failure, timeout, or a response that could not be decoded"""
    pass


class UpstreamError(ChatError):
    """Application-level error reported by the service (4xx or success=false)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        error_type: str = "",
    ):
        self.status = status
        self.error_type = error_type
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        if self.status is None:
            return self.message
        if self.error_type:
            return f"status code: {self.status} {self.error_type}: {self.message}"
        return f"status code: {self.status}: {self.message}"


class DirectoryError(UpstreamError):
    """Raised when the channel or direct-message list cannot be resolved.

    Status and error type are taken from the cause; only the cause's bare
    message is appended, so the status prefix appears once.
    """

    def __init__(self, message: str, cause: Optional[ChatError] = None):
        status = getattr(cause, "status", None)
        error_type = getattr(cause, "error_type", "")
        if cause is not None:
            message = f"{message}: {getattr(cause, 'message', None) or cause}"
        super().__init__(message, status=status, error_type=error_type)
