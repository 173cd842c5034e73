"""Fold an OpenAI-style Server-Sent Events byte stream into a conversation."""

import codecs
import json
from typing import AsyncGenerator, AsyncIterable, Awaitable, Callable, List, Optional

from app.core.logging import setup_logger
from app.schemas.chat import ConversationMessage
from app.services.conversation import (
    AppendDelta,
    BeginAssistantMessage,
    Conversation,
    SealAssistantMessage,
    reduce,
)

logger = setup_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

UpdateCallback = Callable[[ConversationMessage, bool], Awaitable[None]]


class StreamAssembler:
    """
    Incremental reader for a chat-completion event stream.

    Bytes may arrive split at any point: inside a UTF-8 sequence, inside a
    JSON payload or between ``data:`` lines. Complete lines are parsed as they
    arrive and the text after the last newline is carried over to the next
    chunk, so the assembled message does not depend on how the stream was cut.
    """

    def __init__(
        self,
        conversation: Optional[Conversation] = None,
        on_update: Optional[UpdateCallback] = None,
        message_id: Optional[str] = None,
    ) -> None:
        self.conversation = reduce(
            conversation or Conversation(), BeginAssistantMessage(message_id=message_id)
        )
        self.done = False
        self.sealed = False
        self._on_update = on_update
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def message(self) -> ConversationMessage:
        """The assistant message being assembled."""
        return self.conversation.last_message

    def feed(self, chunk: bytes) -> List[AppendDelta]:
        """Decode one chunk and fold every complete line it finishes."""
        if self.sealed:
            raise RuntimeError("Cannot feed a sealed stream assembler")

        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._fold_lines(lines)

    def finish(self) -> List[AppendDelta]:
        """Flush the decoder, fold any unterminated final line and seal."""
        if self.sealed:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        deltas = self._fold_lines(remaining.split("\n"))

        self.conversation = reduce(self.conversation, SealAssistantMessage())
        self.sealed = True
        logger.debug(
            f"Sealed assistant message {self.message.message_id} "
            f"({len(self.message.content)} chars)"
        )
        return deltas

    async def consume(self, stream: AsyncIterable[bytes]) -> Conversation:
        """Read ``stream`` to the end, folding and reporting every delta."""
        async for _ in self.tee(stream):
            pass
        return self.conversation

    async def tee(self, stream: AsyncIterable[bytes]) -> AsyncGenerator[bytes, None]:
        """
        Yield each chunk of ``stream`` unchanged while assembling it.

        The update callback is awaited with ``final=False`` after every chunk
        that produced at least one delta, and with ``final=True`` once the
        stream ends and the message is sealed. If the stream fails or the
        consumer stops iterating early, the message keeps its partial state
        and the callback still gets one last ``final=True`` update with it.
        """
        completed = False
        try:
            async for chunk in stream:
                if self.feed(chunk):
                    await self._notify(final=False)
                yield chunk

            self.finish()
            completed = True
            await self._notify(final=True)
        finally:
            if not completed:
                logger.info(
                    f"Stream for message {self.message.message_id} ended early "
                    f"({len(self.message.content)} chars assembled)"
                )
                await self._notify(final=True)

    async def _notify(self, final: bool) -> None:
        if self._on_update is not None:
            await self._on_update(self.message, final)

    def _fold_lines(self, lines: List[str]) -> List[AppendDelta]:
        deltas = []
        for raw_line in lines:
            delta = self._parse_line(raw_line.rstrip("\r"))
            if delta is not None:
                self.conversation = reduce(self.conversation, delta)
                deltas.append(delta)
        return deltas

    def _parse_line(self, line: str) -> Optional[AppendDelta]:
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):].strip()
        if payload == DONE_SENTINEL:
            self.done = True
            return None

        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            # Not a fault: a malformed or truncated frame is skipped
            logger.debug(f"Skipping unparseable SSE frame: {payload[:80]!r}")
            return None

        return extract_delta(frame)


def extract_delta(frame: object) -> Optional[AppendDelta]:
    """Return the text carried by one stream frame, if any."""
    if not isinstance(frame, dict):
        return None
    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    reasoning = delta.get("reasoning_content")
    content = content if isinstance(content, str) else ""
    reasoning = reasoning if isinstance(reasoning, str) else ""
    if not content and not reasoning:
        return None
    return AppendDelta(content=content, reasoning=reasoning)
