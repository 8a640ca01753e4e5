"""
Relay orchestration: resolve accounts, subscribe, ingest and deliver fills.

Duties running concurrently once started:

- the subscription refresh job (APScheduler interval job),
- the flush job for batched delivery (APScheduler interval job),
- the ingestion loop (asyncio task draining the event source).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timezone
from typing import Optional, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from data_pipeline.ingestor import EventIngestor
from exchanges.base_client import AddressResolver, EventSource
from exchanges.errors import DeliveryError, RelayError, ResolutionError, SubscribeError
from exchanges.hyperliquid.info import HyperliquidInfoClient
from services.notifications.dispatcher import DeliveryMode, MessageSink, NotificationDispatcher
from services.notifications.webhook import WebhookSink
from services.relay.settings import RelaySettings
from streaming.manager import SubscriptionManager
from streaming.streams import UserEventsStream

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

_REFRESH_JOB_ID = "refresh_subscriptions"
_FLUSH_JOB_ID = "flush_notifications"


class ManagedEventSource(EventSource, Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class RelayApp:
    """Wires the relay components together and owns their lifetime."""

    def __init__(
        self,
        settings: RelaySettings,
        *,
        resolver: Optional[AddressResolver] = None,
        source: Optional[ManagedEventSource] = None,
        sink: Optional[MessageSink] = None,
    ) -> None:
        self.settings = settings
        self._resolver = resolver or HyperliquidInfoClient(base_url=settings.api_url, timeout=settings.http_timeout)
        self._source = source or UserEventsStream(settings.ws_url)
        self._sink = sink or WebhookSink(settings.webhook_url, timeout=settings.http_timeout)
        self.manager = SubscriptionManager(self._source)
        self.dispatcher = NotificationDispatcher(
            self._sink,
            mode=settings.delivery_mode,
            failure_policy=settings.failure_policy,
            pacing_interval=settings.pacing_interval,
        )
        self.ingestor = EventIngestor(self._source, self.dispatcher)
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._fatal_event = asyncio.Event()
        self._fatal_error: Optional[BaseException] = None

    async def run(self) -> int:
        """Run until a fatal error; returns the process exit code."""
        try:
            try:
                await self.start()
            except RelayError as exc:
                logger.error("Startup failed: %s", exc)
                return EXIT_FAILURE
            except Exception as exc:
                logger.exception("Startup failed: %s", exc)
                return EXIT_FAILURE
            return await self._supervise()
        finally:
            await self.shutdown()

    async def start(self) -> None:
        """Resolve accounts, connect, subscribe and schedule periodic jobs."""
        logger.info("Resolving child accounts of vault %s...", self.settings.vault_address)
        try:
            accounts = await self._resolver.fetch_child_addresses(self.settings.vault_address)
        finally:
            await _close_quietly(self._resolver)
        if not accounts:
            raise ResolutionError(f"Vault {self.settings.vault_address} has no child accounts")

        logger.info("Connecting event stream...")
        await self._source.start()

        logger.info("Subscribing user events for %d accounts...", len(accounts))
        subscriptions = await self.manager.initialize(accounts)
        if not subscriptions:
            raise SubscribeError("No account could be subscribed")

        self._scheduler = self._build_scheduler()
        self._scheduler.start()
        logger.info(
            "Relay started: %d subscriptions, %s delivery (%s on failure)",
            len(subscriptions),
            self.dispatcher.mode.value,
            self.dispatcher.failure_policy.value,
        )

    async def shutdown(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
        self.ingestor.stop()
        if self.dispatcher.mode is DeliveryMode.BATCHED and self.dispatcher.pending:
            try:
                await self.dispatcher.flush()
            except DeliveryError as exc:
                logger.warning("Final flush failed: %s", exc)
        await self._source.stop()
        await _close_quietly(self._sink)

    def _build_scheduler(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self._refresh_job,
            trigger=IntervalTrigger(seconds=self.settings.refresh_interval),
            id=_REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if self.dispatcher.mode is DeliveryMode.BATCHED:
            scheduler.add_job(
                self._flush_job,
                trigger=IntervalTrigger(seconds=self.settings.flush_interval),
                id=_FLUSH_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        return scheduler

    async def _refresh_job(self) -> None:
        await self.manager.refresh_cycle()

    async def _flush_job(self) -> None:
        try:
            await self.dispatcher.flush()
        except DeliveryError as exc:
            self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        if self._fatal_error is None:
            self._fatal_error = exc
        self._fatal_event.set()

    async def _supervise(self) -> int:
        ingest_task = asyncio.create_task(self.ingestor.run(), name="relay-ingestor")
        fatal_task = asyncio.create_task(self._fatal_event.wait(), name="relay-fatal")
        try:
            await asyncio.wait({ingest_task, fatal_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (ingest_task, fatal_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(ingest_task, fatal_task, return_exceptions=True)

        if ingest_task.done() and not ingest_task.cancelled() and ingest_task.exception() is not None:
            self._fail(ingest_task.exception())  # type: ignore[arg-type]
        if self._fatal_error is not None:
            logger.error("Relay stopped after fatal error: %s", self._fatal_error)
            return EXIT_FAILURE
        return EXIT_OK


async def _close_quietly(client: object) -> None:
    close = getattr(client, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as exc:  # pragma: no cover - best effort during shutdown
        logger.warning("Failed to close %s: %s", type(client).__name__, exc)
