"""Chat models for the relay endpoint and conversation state."""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class Message(BaseModel):
    """One turn in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(..., description="Who produced the message: 'user' or 'assistant'")
    content: str = Field(..., description="Visible message text")
    reasoning: Optional[str] = Field(
        default=None,
        description="Reasoning trace, only populated for assistant messages",
    )

    def to_upstream(self) -> Dict[str, str]:
        """Payload accepted by the chat-completion API (no reasoning field)."""
        return {"role": self.role, "content": self.content}


class ConversationMessage(Message):
    """A message with the stable identity used as its conversation-store key."""

    message_id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChatRequest(BaseModel):
    """Validated body of ``POST /chat``."""

    messages: List[Message] = Field(..., min_length=1)
    stream: bool = Field(
        default=False,
        description="Relay the upstream Server-Sent Events stream instead of a JSON reply",
    )


class HistoryMessageResponse(BaseModel):
    """A stored conversation message."""

    id: str = Field(..., description="Message ID (UUID)")
    role: Role = Field(..., description="Message role")
    content: str = Field(..., description="Message content")
    reasoning: Optional[str] = Field(default=None, description="Reasoning trace")
    timestamp: str = Field(..., description="Creation timestamp (ISO format)")


class HistoryResponse(BaseModel):
    """Conversation history for the current user, oldest first."""

    messages: List[HistoryMessageResponse] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error envelope returned by every endpoint."""

    error: str = Field(..., description="Human-readable error message")
