"""
HTTP transport for streamed chat completions.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import httpx

from .classifier import ErrorClassifier, is_success_status
from .exceptions import MalformedResponseError, TransportError
from .models import ChatEndpointConfig, Message

logger = logging.getLogger(__name__)

EXPECTED_CONTENT_TYPES = ("text/event-stream", "stream")
HTTP_NO_CONTENT = 204


class ChatStreamClient:
    """HTTP client yielding the raw byte chunks of a streamed chat reply."""

    def __init__(
        self,
        config: ChatEndpointConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(
                connect=config.connect_timeout,
                read=config.read_timeout,
                write=config.write_timeout,
                pool=config.pool_timeout,
            ),
            transport=transport,
        )

    @asynccontextmanager
    async def stream_chat(
        self, messages: Sequence[Message]
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open a streamed chat request.

        Yields the response body as an async iterator of raw byte chunks. A
        non-success status is classified and raised before anything is
        yielded. The response is closed when the block exits.

        Raises:
            ChatStreamError: Classified pre-stream failure
        """
        payload = {"messages": [m.to_payload() for m in messages]}

        try:
            async with self.client.stream(
                "POST", self.config.url, json=payload
            ) as response:
                if not is_success_status(response.status_code):
                    body = await response.aread()
                    raise ErrorClassifier.classify_status(
                        response.status_code,
                        body,
                        retry_after=response.headers.get("retry-after"),
                    )

                if response.status_code == HTTP_NO_CONTENT:
                    raise MalformedResponseError(
                        "No response body", status_code=response.status_code
                    )

                content_type = response.headers.get("content-type", "")
                if not any(t in content_type for t in EXPECTED_CONTENT_TYPES):
                    logger.warning(
                        f"Expected streaming response, got content-type: "
                        f"{content_type or '<none>'}"
                    )

                yield response.aiter_bytes()

        except httpx.HTTPError as e:
            logger.error(f"HTTP error opening chat stream: {e}")
            raise TransportError(f"HTTP error: {e!s}") from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> ChatStreamClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
