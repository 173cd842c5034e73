"""Repository for ChatMessageModel database operations with Protocol."""

from datetime import datetime
from typing import Optional, List, Protocol
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreError
from app.models.message import ChatMessageModel
from app.core.logging import setup_logger

logger = setup_logger(__name__)


class MessageRepositoryProtocol(Protocol):
    """Protocol for MessageRepository interface."""

    async def save(
        self,
        message_id: UUID,
        user_id: str,
        role: str,
        content: str,
        reasoning: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> ChatMessageModel: ...

    async def get_by_id(self, message_id: UUID) -> Optional[ChatMessageModel]: ...

    async def get_by_user(
        self, user_id: str, limit: int = 200
    ) -> List[ChatMessageModel]: ...


class MessageRepository:
    """Repository for ChatMessageModel operations with injected session."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def save(
        self,
        message_id: UUID,
        user_id: str,
        role: str,
        content: str,
        reasoning: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> ChatMessageModel:
        """
        Insert a message, or overwrite the stored state of an existing one.

        Writes for the same ``message_id`` are last-write-wins, so a streamed
        reply can be saved repeatedly as it grows.
        """
        if role not in ("user", "assistant"):
            raise StoreError(f"Invalid role: {role}. Must be 'user' or 'assistant'")

        message = await self.get_by_id(message_id)
        if message is None:
            message = ChatMessageModel(
                id=message_id,
                user_id=user_id,
                role=role,
                content=content,
                reasoning=reasoning or "",
            )
            if created_at is not None:
                message.created_at = created_at
            self.session.add(message)
        else:
            if message.user_id != user_id:
                raise StoreError(
                    f"Message {message_id} belongs to a different user"
                )
            message.content = content
            message.reasoning = reasoning or ""

        await self.session.commit()
        await self.session.refresh(message)
        logger.debug(
            f"Saved {role} message {message_id} for user {user_id} "
            f"({len(content)} chars)"
        )
        return message

    async def get_by_id(self, message_id: UUID) -> Optional[ChatMessageModel]:
        """Get message by ID."""
        result = await self.session.execute(
            select(ChatMessageModel).where(ChatMessageModel.id == message_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user(
        self, user_id: str, limit: int = 200
    ) -> List[ChatMessageModel]:
        """Get the most recent ``limit`` messages for a user, oldest first."""
        query = (
            select(ChatMessageModel)
            .where(ChatMessageModel.user_id == user_id)
            .order_by(ChatMessageModel.created_at.desc(), ChatMessageModel.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        messages = list(result.scalars().all())
        messages.reverse()

        logger.debug(f"Retrieved {len(messages)} messages for user {user_id}")
        return messages
