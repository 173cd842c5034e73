"""Dependency injection functions for chat service."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends

from app.db.database import async_session_factory
from app.repositories import MessageRepository, MessageRepositoryProtocol
from app.services.chat import ChatService
from app.services.completion import CompletionClient, create_completion_client


@asynccontextmanager
async def message_repository_scope() -> AsyncIterator[MessageRepositoryProtocol]:
    """Message repository bound to its own database session."""
    async with async_session_factory() as session:
        yield MessageRepository(session)


def get_completion_client() -> CompletionClient:
    """Get completion client configured from settings."""
    return create_completion_client()


def get_chat_service(
    completion_client: CompletionClient = Depends(get_completion_client),
) -> ChatService:
    """Get chat service instance with injected client and repository scope."""
    return ChatService(
        completion_client=completion_client,
        repository_scope=message_repository_scope,
    )
