"""Shared test doubles for the upstream API and the conversation store."""

import json
from contextlib import asynccontextmanager
from typing import Iterable

import httpx

from app.services.completion import CompletionClient

UPSTREAM_URL = "https://upstream.test/api/v3/chat/completions"


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in the given chunks."""

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks = list(chunks)

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


def sse_frame(content: str) -> str:
    """One upstream delta event carrying ``content``."""
    payload = {"choices": [{"delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}\n\n"


def make_completion_client(handler, api_key="test-key") -> CompletionClient:
    return CompletionClient(
        api_key=api_key,
        base_url=UPSTREAM_URL,
        model="deepseek-r1-250120",
        system_prompt="你是人工智能助手.",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


def make_repository_scope(repo):
    """Repository scope that always yields ``repo``."""

    @asynccontextmanager
    async def scope():
        yield repo

    return scope
