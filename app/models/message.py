"""SQLAlchemy ORM model for stored conversation messages."""

from datetime import datetime, timezone
from typing import Dict, Any
from uuid import uuid4
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    CheckConstraint,
    Index,
    Uuid,
)
from app.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessageModel(Base):
    """ORM model for the per-user, append-only message log."""

    __tablename__ = "chat_messages"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    reasoning = Column(Text, nullable=False, default="")
    created_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'assistant')",
            name="check_chat_message_role",
        ),
        Index("idx_chat_messages_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ChatMessageModel(id={self.id}, user_id={self.user_id}, role={self.role})>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary."""
        return {
            "id": str(self.id),
            "role": self.role,
            "content": self.content,
            "reasoning": self.reasoning or None,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }
