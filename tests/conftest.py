"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock, Mock

import pytest

# Add project root to Python path so imports work correctly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from tests.helpers import sse_frame  # noqa: E402


@pytest.fixture
def completion_response():
    """A batched upstream reply."""
    return {
        "id": "chatcmpl-1",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello there"},
                "finish_reason": "stop",
            }
        ],
    }


@pytest.fixture
def stream_body() -> bytes:
    """A complete upstream event stream whose deltas spell 'Hello, 世界'."""
    return (
        sse_frame("Hel") + sse_frame("lo, ") + sse_frame("世界") + "data: [DONE]\n\n"
    ).encode("utf-8")


@pytest.fixture
def stream_chunks(stream_body) -> List[bytes]:
    """``stream_body`` cut inside a JSON payload and inside a UTF-8 character."""
    cut = stream_body.index("世".encode("utf-8")) + 1
    return [stream_body[:17], stream_body[17:70], stream_body[70:cut], stream_body[cut:]]


@pytest.fixture
def message_repo():
    """Conversation store double recording every save."""
    repo = Mock()
    repo.save = AsyncMock()
    repo.get_by_user = AsyncMock(return_value=[])
    return repo
