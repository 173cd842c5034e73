"""Custom exception classes."""

import json
from typing import Any, Dict, Optional


class ChatAppException(Exception):
    """Base exception for the chat application."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ChatAppException):
    """Malformed request input."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=400, details=details)


class ConfigurationError(ChatAppException):
    """Required configuration (e.g. an API credential) is missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=500, details=details)


class UpstreamError(ChatAppException):
    """The chat-completion API failed or could not be reached."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(
            message,
            status_code=500,
            details={"upstream_status": upstream_status, "body": body},
        )


class IdentityError(ChatAppException):
    """Identity provider rejected a sign-in or sign-up."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)


class StoreError(ChatAppException):
    """Conversation store operation error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status_code=500, details=details)


def format_error_message(
    error: Any, prefix: str = "Failed to process chat request"
) -> str:
    """
    Render any error into a single human-readable message.

    Exceptions contribute their message, followed by their cause on a new
    line when one is chained. Anything else is serialized as JSON, falling
    back to ``repr`` when it is not serializable.
    """
    if isinstance(error, BaseException):
        message = getattr(error, "message", None) or str(error)
        text = f"{prefix}: {message}" if message else f"{prefix}: {type(error).__name__}"
        cause = error.__cause__
        if cause is not None:
            text += f"\n{cause}"
        return text

    try:
        return f"{prefix}: {json.dumps(error, ensure_ascii=False, default=str)}"
    except (TypeError, ValueError):
        return f"{prefix}: {error!r}"
