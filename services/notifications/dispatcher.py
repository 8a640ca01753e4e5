"""
Notification dispatcher turning fill batches into webhook messages.

Two delivery modes are supported:

- ``batched``: fills are buffered and a periodic `flush` posts them as a
  single message, one line per fill. Producers only hold the buffer lock while
  appending; `flush` swaps the buffer out under the lock and posts after
  releasing it.
- ``immediate``: every fill is posted on its own, followed by a fixed pause so
  the destination's rate limit is respected.

What happens when a post fails is governed by `FailurePolicy`: ``drop`` logs
and discards the message, ``exit`` re-raises `DeliveryError` so the relay
terminates.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from accounts.events import FillEvent
from exchanges.errors import DeliveryError
from services.notifications.formatting import format_fill, format_fills

logger = logging.getLogger(__name__)


class DeliveryMode(str, Enum):
    BATCHED = "batched"
    IMMEDIATE = "immediate"


class FailurePolicy(str, Enum):
    DROP = "drop"
    EXIT = "exit"


DEFAULT_FAILURE_POLICIES = {
    DeliveryMode.BATCHED: FailurePolicy.DROP,
    DeliveryMode.IMMEDIATE: FailurePolicy.EXIT,
}


class MessageSink(Protocol):
    async def send(self, content: str) -> None:
        """Deliver one message; raise `DeliveryError` on failure."""


class NotificationDispatcher:
    """Buffers or forwards formatted fills to a `MessageSink`."""

    def __init__(
        self,
        sink: MessageSink,
        *,
        mode: DeliveryMode = DeliveryMode.BATCHED,
        failure_policy: Optional[FailurePolicy] = None,
        pacing_interval: float = 5.0,
    ) -> None:
        self._sink = sink
        self.mode = DeliveryMode(mode)
        self.failure_policy = FailurePolicy(failure_policy) if failure_policy else DEFAULT_FAILURE_POLICIES[self.mode]
        self._pacing_interval = max(0.0, float(pacing_interval))
        self._buffer: List[FillEvent] = []
        self._buffer_lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    async def submit(self, fills: Sequence[FillEvent]) -> None:
        """Accept one report's fills, preserving their order."""
        if not fills:
            return
        if self.mode is DeliveryMode.BATCHED:
            async with self._buffer_lock:
                self._buffer.extend(fills)
            return
        for fill in fills:
            await self._deliver(format_fill(fill))
            await asyncio.sleep(self._pacing_interval)

    async def flush(self) -> bool:
        """Post everything buffered as one message; returns True if a post succeeded."""
        async with self._buffer_lock:
            fills, self._buffer = self._buffer, []
        if not fills:
            return False
        return await self._deliver(format_fills(fills))

    async def _deliver(self, message: str) -> bool:
        try:
            await self._sink.send(message)
        except DeliveryError as exc:
            if self.failure_policy is FailurePolicy.EXIT:
                logger.error("Webhook delivery failed, stopping relay: %s", exc)
                raise
            logger.warning("Webhook delivery failed, dropping message (%d chars): %s", len(message), exc)
            return False
        return True
