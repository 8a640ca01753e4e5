"""
Webhook sink posting chat messages (Discord-compatible ``{"content": ...}``).
"""

from __future__ import annotations

import logging
from typing import List

import httpx

from exchanges.errors import DeliveryError

DISCORD_MAX_CONTENT_LENGTH = 2000

logger = logging.getLogger(__name__)


class WebhookSink:
    """Thin async wrapper around an HTTP POST to a chat webhook."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        max_content_length: int = DISCORD_MAX_CONTENT_LENGTH,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Webhook URL is required")
        self._url = url
        self._max_content_length = max(1, int(max_content_length))
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(self, content: str) -> None:
        """Post `content`, splitting it when it exceeds the webhook's size limit."""
        for chunk in split_content(content, self._max_content_length):
            await self._post(chunk)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, content: str) -> None:
        try:
            response = await self._client.post(
                self._url,
                json={"content": content},
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"failed to send to webhook: {exc!r}") from exc
        if not response.is_success:
            raise DeliveryError(
                f"unexpected status code from webhook: {response.status_code}",
                status_code=response.status_code,
            )


def split_content(content: str, limit: int) -> List[str]:
    """Split on line boundaries so each chunk fits in `limit` characters."""
    if len(content) <= limit:
        return [content]
    chunks: List[str] = []
    current = ""
    for line in content.split("\n"):
        if len(line) > limit:
            logger.warning("Truncating notification line of %d characters", len(line))
            line = line[:limit]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks
