"""Database ORM models."""

from .message import ChatMessageModel

__all__ = ["ChatMessageModel"]
