"""Chat service: relays turns upstream and persists them for known users."""

import asyncio
import json
import time
from typing import (
    Any,
    AsyncContextManager,
    AsyncGenerator,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
)
from uuid import UUID

from app.core.config import settings
from app.core.exceptions import UpstreamError, format_error_message
from app.core.logging import setup_logger
from app.repositories import MessageRepositoryProtocol
from app.schemas.chat import ChatRequest, ConversationMessage, Message
from app.services.completion import CompletionClient
from app.services.conversation import Conversation
from app.services.reasoning import apply_reasoning
from app.services.stream_assembler import StreamAssembler

logger = setup_logger(__name__)

RepositoryScope = Callable[[], AsyncContextManager[MessageRepositoryProtocol]]


class MessagePersister:
    """
    Writes the state of one streamed message to the conversation store.

    With an interval of zero every update is written. Otherwise intermediate
    updates are throttled to at most one per interval; the final update is
    always written so the stored message matches the assembled one.
    """

    def __init__(
        self,
        repository_scope: RepositoryScope,
        user_id: str,
        interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository_scope = repository_scope
        self._user_id = user_id
        self._interval = interval
        self._clock = clock
        self._last_write: Optional[float] = None
        self.writes = 0

    async def __call__(self, message: ConversationMessage, final: bool) -> None:
        now = self._clock()
        if (
            not final
            and self._interval > 0
            and self._last_write is not None
            and now - self._last_write < self._interval
        ):
            return

        self._last_write = now
        try:
            async with self._repository_scope() as repo:
                await repo.save(
                    message_id=UUID(message.message_id),
                    user_id=self._user_id,
                    role=message.role,
                    content=message.content,
                    reasoning=message.reasoning,
                    created_at=message.created_at,
                )
            self.writes += 1
        except Exception as e:
            logger.error(
                f"Error saving message {message.message_id}: {e}", exc_info=True
            )


class ChatService:
    """Service to relay chat turns and keep per-user conversation history."""

    def __init__(
        self,
        completion_client: CompletionClient,
        repository_scope: Optional[RepositoryScope] = None,
        persist_interval: Optional[float] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        """
        Args:
            completion_client: Client for the upstream chat-completion API
            repository_scope: Factory for a scoped message repository. Without
                one, turns are relayed but never persisted.
            persist_interval: Minimum seconds between streamed writes
            history_limit: Max messages returned by ``get_history``
        """
        self._completion = completion_client
        self._repository_scope = repository_scope
        self.persist_interval = (
            settings.CHAT_PERSIST_INTERVAL_SECONDS
            if persist_interval is None
            else persist_interval
        )
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT

    def ensure_configured(self) -> None:
        self._completion.ensure_configured()

    def _persistence_enabled(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self._repository_scope is not None

    async def complete_chat(
        self, request: ChatRequest, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Run a non-streaming turn and return the upstream response unchanged.

        For identified users the trailing user message and the reply (with
        its reasoning trace split out) are stored.
        """
        await self._save_user_turn(request.messages, user_id)
        response = await self._completion.create_chat_completion(
            request.messages, stream=False
        )

        if self._persistence_enabled(user_id):
            reply = parse_reply(response)
            if reply is not None:
                await self._save_message(
                    ConversationMessage(
                        role="assistant",
                        content=reply.content,
                        reasoning=reply.reasoning,
                    ),
                    user_id,
                )
        return response

    async def stream_chat(
        self, request: ChatRequest, user_id: Optional[str] = None
    ) -> AsyncIterator[bytes]:
        """
        Start a streaming turn and return the upstream event-stream bytes.

        Errors before the first byte (configuration, upstream status) are
        raised. For identified users the bytes are folded into an assistant
        message on the way through and persisted as it grows.
        """
        await self._save_user_turn(request.messages, user_id)
        body = await self._completion.create_chat_completion(
            request.messages, stream=True
        )
        if not self._persistence_enabled(user_id):
            return body

        persister = MessagePersister(
            self._repository_scope, user_id, interval=self.persist_interval
        )
        assembler = StreamAssembler(
            conversation=Conversation.from_messages(list(request.messages)),
            on_update=persister,
        )
        logger.info(
            f"Assembling streamed reply {assembler.message.message_id} for user {user_id}"
        )
        return assembler.tee(body)

    async def relay_stream(
        self, body: AsyncIterator[bytes]
    ) -> AsyncGenerator[bytes, None]:
        """
        Pass ``body`` through to the client.

        A failure after streaming has begun cannot change the response
        status, so it is reported as a final ``data:`` frame instead.
        """
        try:
            async for chunk in body:
                yield chunk
        except asyncio.CancelledError:
            logger.info("Client disconnected from chat stream. Closing generator.")
            raise
        except Exception as e:
            logger.error(f"Error while relaying chat stream: {e}", exc_info=True)
            yield format_sse_error(e)

    async def get_history(self, user_id: str) -> List[Dict[str, Any]]:
        """Stored messages for ``user_id``, oldest first."""
        if self._repository_scope is None:
            return []
        async with self._repository_scope() as repo:
            messages = await repo.get_by_user(user_id, limit=self.history_limit)
            return [message.to_dict() for message in messages]

    async def _save_user_turn(
        self, messages: List[Message], user_id: Optional[str]
    ) -> None:
        if not self._persistence_enabled(user_id) or not messages:
            return
        last = messages[-1]
        if last.role != "user":
            return
        await self._save_message(
            ConversationMessage(role="user", content=last.content), user_id
        )

    async def _save_message(self, message: ConversationMessage, user_id: str) -> None:
        await MessagePersister(self._repository_scope, user_id)(message, final=True)


def parse_reply(response: Dict[str, Any]) -> Optional[Message]:
    """First assistant message of a batched response, reasoning split out."""
    try:
        raw = response["choices"][0]["message"]
        message = Message(
            role="assistant",
            content=raw.get("content") or "",
            reasoning=raw.get("reasoning_content") or raw.get("reasoning"),
        )
    except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
        logger.warning(f"Upstream response has no assistant message: {e}")
        return None

    if message.reasoning:
        return message
    return apply_reasoning(message)


def format_sse_error(error: Exception) -> bytes:
    """Encode ``error`` as a terminal ``data:`` frame."""
    if isinstance(error, UpstreamError):
        message = format_error_message(error)
    else:
        message = format_error_message(error, prefix="Streaming error occurred")
    return f"data: {json.dumps({'error': message}, ensure_ascii=False)}\n\n".encode(
        "utf-8"
    )
