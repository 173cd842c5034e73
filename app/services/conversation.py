"""Immutable conversation state and the reducer that updates it."""

from datetime import datetime, timezone
from typing import Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.chat import ConversationMessage, Message


class AppendUserMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    message_id: Optional[str] = None


class BeginAssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    message_id: Optional[str] = None


class AppendDelta(BaseModel):
    """Text fragment(s) received for the open assistant message."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    reasoning: str = ""


class SealAssistantMessage(BaseModel):
    model_config = ConfigDict(frozen=True)


ConversationAction = Union[
    AppendUserMessage, BeginAssistantMessage, AppendDelta, SealAssistantMessage
]


class Conversation(BaseModel):
    """
    Ordered, append-only list of messages.

    At most one message is open (still receiving deltas) and it is always
    the last assistant message.
    """

    model_config = ConfigDict(frozen=True)

    messages: Tuple[ConversationMessage, ...] = Field(default_factory=tuple)
    open_message_id: Optional[str] = None

    @property
    def open_message(self) -> Optional[ConversationMessage]:
        if self.open_message_id is None or not self.messages:
            return None
        return self.messages[-1]

    @property
    def last_message(self) -> Optional[ConversationMessage]:
        return self.messages[-1] if self.messages else None

    def to_messages(self) -> list[Message]:
        """Plain messages, suitable for replaying as request history."""
        return [
            Message(role=m.role, content=m.content, reasoning=m.reasoning)
            for m in self.messages
        ]

    @classmethod
    def from_messages(cls, messages: list[Message]) -> "Conversation":
        return cls(
            messages=tuple(
                ConversationMessage(
                    role=m.role, content=m.content, reasoning=m.reasoning
                )
                for m in messages
            )
        )


def _new_id(message_id: Optional[str]) -> str:
    return message_id or str(uuid4())


def _seal(conversation: Conversation) -> Conversation:
    if conversation.open_message_id is None:
        return conversation
    return conversation.model_copy(update={"open_message_id": None})


def _begin(conversation: Conversation, message_id: Optional[str]) -> Conversation:
    conversation = _seal(conversation)
    message = ConversationMessage(
        role="assistant",
        content="",
        reasoning="",
        message_id=_new_id(message_id),
        created_at=datetime.now(timezone.utc),
    )
    return Conversation(
        messages=conversation.messages + (message,),
        open_message_id=message.message_id,
    )


def reduce(conversation: Conversation, action: ConversationAction) -> Conversation:
    """Apply one action and return the resulting conversation."""
    if isinstance(action, AppendUserMessage):
        conversation = _seal(conversation)
        message = ConversationMessage(
            role="user", content=action.content, message_id=_new_id(action.message_id)
        )
        return Conversation(messages=conversation.messages + (message,))

    if isinstance(action, BeginAssistantMessage):
        return _begin(conversation, action.message_id)

    if isinstance(action, AppendDelta):
        if conversation.open_message is None:
            conversation = _begin(conversation, None)
        current = conversation.open_message
        updated = current.model_copy(
            update={
                "content": current.content + action.content,
                "reasoning": (current.reasoning or "") + action.reasoning,
            }
        )
        return conversation.model_copy(
            update={"messages": conversation.messages[:-1] + (updated,)}
        )

    if isinstance(action, SealAssistantMessage):
        return _seal(conversation)

    raise TypeError(f"Unsupported conversation action: {type(action).__name__}")
