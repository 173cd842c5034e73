"""FastAPI dependency injection functions."""

from .get_chat_service import (
    message_repository_scope,
    get_completion_client,
    get_chat_service,
)
from .get_identity_client import get_identity_client

__all__ = [
    "message_repository_scope",
    "get_completion_client",
    "get_chat_service",
    "get_identity_client",
]
