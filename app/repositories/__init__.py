"""Repository classes for database operations."""

from .message_repo import MessageRepository, MessageRepositoryProtocol

__all__ = [
    "MessageRepository",
    "MessageRepositoryProtocol",
]
