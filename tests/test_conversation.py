"""Unit tests for the conversation reducer."""

import pytest
from pydantic import ValidationError

from app.schemas.chat import Message
from app.services.conversation import (
    AppendDelta,
    AppendUserMessage,
    BeginAssistantMessage,
    Conversation,
    SealAssistantMessage,
    reduce,
)


class TestConversationReducer:
    """Tests for reduce()."""

    def test_full_turn(self):
        """Test a user turn followed by a streamed assistant turn."""
        conversation = Conversation()
        conversation = reduce(conversation, AppendUserMessage(content="hi"))
        conversation = reduce(conversation, BeginAssistantMessage(message_id="a-1"))
        conversation = reduce(conversation, AppendDelta(content="Hel"))
        conversation = reduce(conversation, AppendDelta(content="lo"))
        conversation = reduce(conversation, SealAssistantMessage())

        assert [m.role for m in conversation.messages] == ["user", "assistant"]
        assert conversation.messages[1].content == "Hello"
        assert conversation.messages[1].message_id == "a-1"
        assert conversation.open_message is None

    def test_reduce_does_not_mutate_input(self):
        """Test that every action returns a new value."""
        original = reduce(Conversation(), BeginAssistantMessage())

        updated = reduce(original, AppendDelta(content="x"))

        assert original.messages[-1].content == ""
        assert updated.messages[-1].content == "x"
        assert original.messages[-1].message_id == updated.messages[-1].message_id

    def test_delta_opens_assistant_message(self):
        """Test a delta with nothing open starts an assistant message."""
        conversation = reduce(Conversation(), AppendUserMessage(content="q"))

        conversation = reduce(conversation, AppendDelta(content="a"))

        assert conversation.open_message is not None
        assert conversation.open_message.role == "assistant"
        assert conversation.open_message.content == "a"

    def test_delta_after_seal_opens_new_message(self):
        """Test a sealed message is never appended to again."""
        conversation = reduce(Conversation(), AppendDelta(content="first"))
        conversation = reduce(conversation, SealAssistantMessage())

        conversation = reduce(conversation, AppendDelta(content="second"))

        assert [m.content for m in conversation.messages] == ["first", "second"]

    def test_user_message_seals_open_reply(self):
        """Test that only one message is ever open."""
        conversation = reduce(Conversation(), AppendDelta(content="partial"))

        conversation = reduce(conversation, AppendUserMessage(content="next"))

        assert conversation.open_message_id is None
        assert conversation.messages[0].content == "partial"

    def test_seal_without_open_message_is_noop(self):
        conversation = reduce(Conversation(), AppendUserMessage(content="q"))

        assert reduce(conversation, SealAssistantMessage()) == conversation

    def test_reasoning_delta(self):
        conversation = reduce(Conversation(), AppendDelta(reasoning="because"))
        conversation = reduce(conversation, AppendDelta(content="yes"))

        assert conversation.last_message.reasoning == "because"
        assert conversation.last_message.content == "yes"

    def test_unknown_action(self):
        with pytest.raises(TypeError):
            reduce(Conversation(), object())  # type: ignore[arg-type]

    def test_conversation_is_frozen(self):
        conversation = Conversation()
        with pytest.raises(ValidationError):
            conversation.open_message_id = "x"  # type: ignore[misc]


class TestConversationHistory:
    """Tests for converting to and from request history."""

    def test_round_trip_preserves_schema(self):
        """Test an assembled reply can be replayed as request history."""
        conversation = Conversation.from_messages([Message(role="user", content="hi")])
        conversation = reduce(conversation, AppendDelta(content="hello", reasoning="r"))
        conversation = reduce(conversation, SealAssistantMessage())

        messages = conversation.to_messages()

        assert messages == [
            Message(role="user", content="hi"),
            Message(role="assistant", content="hello", reasoning="r"),
        ]
        assert [m.to_upstream() for m in messages] == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]
