"""
Hyperliquid ``userEvents`` websocket stream.

`UserEventsStream` implements the `EventSource` protocol on top of a single
websocket connection: it issues local subscription handles, sends the
subscribe/unsubscribe frames, keeps the connection alive and reconnects (then
resubscribes every live account) when the upstream drops the socket. Decoded
frames are published on an asyncio queue drained by the ingestor.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from accounts.events import EventMessage, WatchedAccount, decode_message
from exchanges.errors import SubscribeError, UnknownHandleError, UnsubscribeError

MAINNET_WS_URL = "wss://api.hyperliquid.xyz/ws"
TESTNET_WS_URL = "wss://api.hyperliquid-testnet.xyz/ws"

logger = logging.getLogger(__name__)

Connector = Callable[..., Awaitable[ClientConnection]]


class UserEventsStream:
    """Event source multiplexing per-account ``userEvents`` subscriptions."""

    def __init__(
        self,
        url: str | None = None,
        *,
        connector: Connector | None = None,
        ping_interval: float = 50.0,
        open_timeout: float = 20.0,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._url = url or MAINNET_WS_URL
        self._connector: Connector = connector or websockets.connect
        self._ping_interval_seconds = ping_interval
        self._connect_timeout_seconds = open_timeout
        self._initial_reconnect_delay = reconnect_delay
        self._queue: asyncio.Queue[EventMessage] = asyncio.Queue()
        # Serialises every write on the socket (subscribe, unsubscribe, resubscribe, ping).
        self._transport_lock = asyncio.Lock()
        self._handles: Dict[int, WatchedAccount] = {}
        self._handle_ids = itertools.count(1)
        self._ws: Optional[ClientConnection] = None
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def live_handles(self) -> Dict[int, WatchedAccount]:
        return dict(self._handles)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        """Open the first connection; raises if the venue cannot be reached."""
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._ws = await self._open()
        logger.info("Websocket connection to %s established", self._url)
        self._task = asyncio.create_task(self._run_forever(), name=f"{self.__class__.__name__}-task")

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    # ------------------------------------------------------------------
    # EventSource API
    # ------------------------------------------------------------------
    async def subscribe(self, account: WatchedAccount) -> int:
        async with self._transport_lock:
            ws = self._ws
            if ws is None:
                raise SubscribeError("websocket is not connected", account=account.address)
            if account not in self._handles.values():
                try:
                    await ws.send(json.dumps(_subscription_frame("subscribe", account)))
                except (ConnectionClosed, OSError) as exc:
                    raise SubscribeError(f"failed to send subscribe frame: {exc}", account=account.address) from exc
            handle = next(self._handle_ids)
            self._handles[handle] = account
            return handle

    async def unsubscribe(self, handle: int) -> None:
        async with self._transport_lock:
            account = self._handles.get(handle)
            if account is None:
                raise UnknownHandleError(f"unknown subscription handle {handle}", handle=handle)
            shared = any(acct == account for other, acct in self._handles.items() if other != handle)
            if not shared:
                ws = self._ws
                if ws is None:
                    raise UnsubscribeError("websocket is not connected", handle=handle, account=account.address)
                try:
                    await ws.send(json.dumps(_subscription_frame("unsubscribe", account)))
                except (ConnectionClosed, OSError) as exc:
                    raise UnsubscribeError(
                        f"failed to send unsubscribe frame: {exc}", handle=handle, account=account.address
                    ) from exc
            del self._handles[handle]

    async def next_message(self) -> EventMessage:
        return await self._queue.get()

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------
    async def _open(self) -> ClientConnection:
        return await self._connector(
            self._url,
            # Keepalive is sent as an application-level ping frame.
            ping_interval=None,
            ping_timeout=None,
            close_timeout=10,
            open_timeout=self._connect_timeout_seconds,
        )

    async def _run_forever(self) -> None:
        reconnect_delay = self._initial_reconnect_delay
        max_reconnect_delay = max(45.0, self._initial_reconnect_delay)

        while not self._stop_event.is_set():
            ws = self._ws
            try:
                if ws is None:
                    ws = await self._open()
                    self._ws = ws
                    reconnect_delay = self._initial_reconnect_delay
                    logger.info("Websocket reconnected to %s", self._url)
                    await self._resubscribe_all(ws)
                await self._listen(ws)
                if not self._stop_event.is_set():
                    logger.warning("Websocket closed by upstream; reconnecting in %ss", reconnect_delay)
            except asyncio.CancelledError:
                logger.info("%s task cancelled", self.__class__.__name__)
                raise
            except asyncio.TimeoutError:
                logger.warning(
                    "Websocket handshake timed out after %ss; retrying in %ss",
                    self._connect_timeout_seconds,
                    reconnect_delay,
                )
            except (ConnectionClosedError, ConnectionClosedOK) as exc:
                logger.warning("Websocket closed (%s); reconnecting in %ss", exc, reconnect_delay)
            except OSError as exc:
                logger.error("Websocket OS error: %s; reconnecting in %ss", exc, reconnect_delay)
            except Exception as exc:
                logger.exception("Websocket unexpected error: %s; reconnecting in %ss", exc, reconnect_delay)
            self._ws = None
            if self._stop_event.is_set():
                break
            await asyncio.sleep(reconnect_delay)
            reconnect_delay = min(max_reconnect_delay, reconnect_delay * 1.5)

    async def _resubscribe_all(self, ws: ClientConnection) -> None:
        async with self._transport_lock:
            accounts = list(dict.fromkeys(self._handles.values()))
            for account in accounts:
                await ws.send(json.dumps(_subscription_frame("subscribe", account)))
        if accounts:
            logger.info("Resubscribed %d accounts after reconnect", len(accounts))

    async def _listen(self, ws: ClientConnection) -> None:
        async def _keepalive() -> None:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._ping_interval_seconds)
                try:
                    async with self._transport_lock:
                        await ws.send(json.dumps({"method": "ping"}))
                except (ConnectionClosed, OSError) as exc:
                    logger.warning("Keepalive ping failed: %s", exc)
                    break

        keepalive_task = asyncio.create_task(_keepalive(), name=f"{self.__class__.__name__}-keepalive")
        try:
            async for raw in ws:
                if self._stop_event.is_set():
                    break
                self._handle_frame(raw)
        finally:
            keepalive_task.cancel()
            try:
                await keepalive_task
            except asyncio.CancelledError:
                pass

    def _handle_frame(self, raw: Any) -> None:
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("Failed to decode websocket frame: %s", exc)
            return
        if not isinstance(payload, dict):
            logger.debug("Ignoring non-object websocket frame: %r", payload)
            return
        if payload.get("channel") == "error":
            logger.error("Websocket error frame: %s", payload.get("data"))
        self._queue.put_nowait(decode_message(payload))


def _subscription_frame(method: str, account: WatchedAccount) -> dict:
    return {
        "method": method,
        "subscription": {"type": "userEvents", "user": account.address},
    }


def ws_url_for_network(network: Optional[str]) -> str:
    return TESTNET_WS_URL if (network or "").strip().lower() == "testnet" else MAINNET_WS_URL
