"""
Inbound event ingestion: drains the event source and routes fills.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from accounts.events import FillEvent, UserFillsReport
from exchanges.base_client import EventSource

logger = logging.getLogger(__name__)


class FillConsumer(Protocol):
    async def submit(self, fills: Sequence[FillEvent]) -> None:
        """Handle one ordered batch of fills."""


class EventIngestor:
    """Consumes decoded messages and forwards fills reports downstream."""

    def __init__(self, source: EventSource, consumer: FillConsumer) -> None:
        self._source = source
        self._consumer = consumer
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        """Loop until stopped; delivery errors raised by the consumer propagate."""
        logger.info("Event ingestion started")
        while not self._stop_event.is_set():
            message = await self._source.next_message()
            await self.handle(message)

    async def handle(self, message: object) -> None:
        if not isinstance(message, UserFillsReport):
            logger.debug("Ignoring %s message", getattr(message, "channel", type(message).__name__))
            return
        if not message.fills:
            return
        logger.info(
            "Received %d fills%s",
            len(message.fills),
            f" for {message.account}" if message.account else "",
        )
        await self._consumer.submit(message.fills)
