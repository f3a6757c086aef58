"""Thin async HTTP layer shared by the REST-based provider adapters.

Requests go through a single ``httpx.AsyncClient``. Non-2xx answers raise
``httpx.HTTPStatusError`` so the adapter boundary can classify them by
status code.
"""

from __future__ import annotations

__all__ = ["DONE_SENTINEL", "HttpClient"]

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)

DONE_SENTINEL = "[DONE]"
_DATA_PREFIX = "data:"


class HttpClient:
    """JSON-over-HTTP client with server-sent-event streaming."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            timeout_seconds: Per-request timeout when creating a new client.
            client: Optional pre-built ``httpx.AsyncClient`` (e.g. with a mock
                transport in tests).
        """
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> Any:
        """POST *payload* as JSON and return the decoded JSON body.

        Raises:
            httpx.HTTPStatusError: On a non-2xx status.
            httpx.TransportError: On connection failures or timeouts.
        """
        logger.debug("http_post", url=url)
        response = await self._client.post(url, json=payload, headers=headers)
        logger.debug("http_response", url=url, status_code=response.status_code)
        response.raise_for_status()
        return response.json()

    async def post_stream(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> AsyncIterator[dict[str, Any]]:
        """POST *payload* and yield each ``data: {json}`` event of the reply.

        The stream ends at a ``data: [DONE]`` line or when the connection
        closes. Lines that are not valid JSON are logged and skipped.
        """
        logger.debug("http_stream_open", url=url)
        async with self._client.stream("POST", url, json=payload, headers=headers) as response:
            if response.is_error:
                await response.aread()
            response.raise_for_status()
            async for raw_line in response.aiter_lines():
                line = raw_line.strip()
                if not line:
                    continue
                if not line.startswith(_DATA_PREFIX):
                    continue
                data = line[len(_DATA_PREFIX) :].strip()
                if data == DONE_SENTINEL:
                    break
                try:
                    event = json.loads(data)
                except json.JSONDecodeError as exc:
                    logger.warning("stream_chunk_malformed", url=url, error=str(exc))
                    continue
                yield event
        logger.debug("http_stream_closed", url=url)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
