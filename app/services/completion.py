"""Client for the upstream OpenAI-compatible chat-completion API."""

from typing import Any, AsyncIterator, Dict, Optional, Sequence, Union

import httpx

from app.core.config import settings
from app.core.exceptions import ConfigurationError, UpstreamError, ValidationError
from app.core.logging import setup_logger
from app.schemas.chat import Message

logger = setup_logger(__name__)

CompletionResult = Union[Dict[str, Any], AsyncIterator[bytes]]


class CompletionClient:
    """
    Issues one chat-completion request per call.

    The system instruction is always prepended and cannot be supplied by
    callers. No retries are attempted; a non-success response is raised as
    an :class:`UpstreamError` carrying the upstream status and body.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str],
        base_url: str,
        model: str,
        system_prompt: str,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.system_prompt = system_prompt
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        """Raise :class:`ConfigurationError` if no API credential is set."""
        if not self.is_configured:
            raise ConfigurationError("DEEPSEEK_API_KEY is not configured")

    def build_payload(self, messages: Sequence[Message], stream: bool) -> Dict[str, Any]:
        """Request body sent upstream for ``messages``."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "system", "content": self.system_prompt}]
            + [message.to_upstream() for message in messages],
        }
        if stream:
            payload["stream"] = True
        return payload

    async def create_chat_completion(
        self, messages: Sequence[Message], stream: bool = False
    ) -> CompletionResult:
        """
        Send ``messages`` to the chat-completion API.

        Args:
            messages: Conversation so far, oldest first. Must not be empty.
            stream: Return the raw event-stream body instead of parsed JSON.

        Returns:
            The parsed JSON response, or an async iterator over the raw
            response bytes when ``stream`` is set. Closing the iterator
            closes the upstream connection.

        Raises:
            ValidationError: If ``messages`` is empty.
            ConfigurationError: If the API credential is not configured.
            UpstreamError: On a non-success status or a transport failure.
        """
        if not messages:
            raise ValidationError("Invalid messages format")
        self.ensure_configured()

        payload = self.build_payload(messages, stream)
        logger.info(
            f"Requesting chat completion: model={self.model}, "
            f"messages={len(messages)}, stream={stream}"
        )

        client = self._create_http_client()
        try:
            request = client.build_request(
                "POST",
                self.base_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response = await client.send(request, stream=stream)
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error(f"Chat completion request failed: {e}")
            raise UpstreamError(f"Upstream request failed: {type(e).__name__}") from e

        if not stream:
            try:
                await self._raise_for_status(response)
                return response.json()
            except ValueError as e:
                raise UpstreamError("Upstream returned invalid JSON") from e
            finally:
                await response.aclose()
                await client.aclose()

        try:
            await self._raise_for_status(response)
        except Exception:
            await response.aclose()
            await client.aclose()
            raise
        return self._iter_body(client, response)

    def _create_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        body = (await response.aread()).decode("utf-8", errors="replace")
        logger.error(f"Upstream API error ({response.status_code}): {body[:500]}")
        raise UpstreamError(
            f"API error ({response.status_code}): {body or response.reason_phrase}",
            upstream_status=response.status_code,
            body=body,
        )

    async def _iter_body(
        self, client: httpx.AsyncClient, response: httpx.Response
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            logger.error(f"Upstream stream interrupted: {e}")
            raise UpstreamError("Upstream stream interrupted") from e
        finally:
            await response.aclose()
            await client.aclose()


def create_completion_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CompletionClient:
    """Build a client from application settings."""
    return CompletionClient(
        api_key=settings.DEEPSEEK_API_KEY,
        base_url=settings.DEEPSEEK_API_URL,
        model=settings.DEEPSEEK_MODEL,
        system_prompt=settings.DEEPSEEK_SYSTEM_PROMPT,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        transport=transport,
    )

