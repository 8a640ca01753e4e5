"""
Abstract client definitions for venue integrations.

Concrete adapters (e.g. the Hyperliquid websocket stream) implement
`EventSource` so the subscription manager and ingestor never depend on the
transport directly.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from accounts.events import EventMessage, WatchedAccount

SubscriptionHandle = int


@runtime_checkable
class EventSource(Protocol):
    """Protocol describing a push-based per-account event subscription API."""

    async def subscribe(self, account: WatchedAccount) -> SubscriptionHandle:
        """Open a user-events subscription; raise `SubscribeError` on failure."""

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Cancel a subscription by handle; raise `UnsubscribeError` on failure."""

    async def next_message(self) -> EventMessage:
        """Wait for the next decoded inbound message."""


@runtime_checkable
class AddressResolver(Protocol):
    """One-shot lookup of the accounts to watch."""

    async def fetch_child_addresses(self, vault_address: str) -> list[WatchedAccount]:
        """Return the child accounts of `vault_address`; raise `ResolutionError` on failure."""
