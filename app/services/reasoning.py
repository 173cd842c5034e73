"""Split a batched assistant reply into reasoning trace and final answer."""

import re
from typing import Tuple

from app.schemas.chat import Message

REASONING_PATTERNS = (
    re.compile(r"推理过程：([\s\S]*?)\n\n最终回答：([\s\S]*)", re.IGNORECASE),
    re.compile(r"Reasoning:([\s\S]*?)\n\nFinal Answer:([\s\S]*)", re.IGNORECASE),
)


def extract_reasoning(text: str) -> Tuple[str, str]:
    """
    Return ``(content, reasoning)`` for a raw assistant reply.

    When the reply does not contain both labelled sections the text is
    returned unchanged with an empty reasoning trace.
    """
    for pattern in REASONING_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(2).strip(), match.group(1).strip()
    return text, ""


def apply_reasoning(message: Message) -> Message:
    """Return ``message`` with its reasoning trace split out of the content."""
    if message.role != "assistant":
        return message
    content, reasoning = extract_reasoning(message.content)
    if content == message.content and not reasoning:
        return message
    return message.model_copy(update={"content": content, "reasoning": reasoning})
