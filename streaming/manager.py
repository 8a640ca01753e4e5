"""
Lifecycle controls for per-account user-event subscriptions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from accounts.events import Subscription, SubscriptionStatus, WatchedAccount
from exchanges.base_client import EventSource
from exchanges.errors import SubscribeError, UnknownHandleError, UnsubscribeError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RefreshReport:
    """Outcome of one refresh cycle."""

    refreshed: List[WatchedAccount] = field(default_factory=list)
    failed: List[WatchedAccount] = field(default_factory=list)


class SubscriptionManager:
    """Keeps one live subscription per watched account.

    Slots are keyed by account, so the manager can never hold two handles for
    the same account. Each refresh cycle tears down the old handle before a new
    one is requested. A handle the source no longer knows counts as torn down.
    Any error stays confined to its own slot, which is marked for retry.
    """

    def __init__(self, source: EventSource) -> None:
        self._source = source
        self._slots: Dict[WatchedAccount, Subscription] = {}
        self._refresh_lock = asyncio.Lock()

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return tuple(self._slots.values())

    def active_accounts(self) -> List[WatchedAccount]:
        return [slot.account for slot in self._slots.values() if slot.is_active]

    def handle_for(self, account: WatchedAccount) -> Optional[int]:
        slot = self._slots.get(account)
        return slot.handle if slot else None

    async def initialize(self, accounts: Iterable[WatchedAccount]) -> List[Subscription]:
        """Subscribe every account once; accounts that fail are left unwatched."""
        requested = list(dict.fromkeys(accounts))
        created: List[Subscription] = []
        for account in requested:
            try:
                handle = await self._source.subscribe(account)
            except SubscribeError as exc:
                logger.warning("Failed to subscribe %s at startup: %s", account, exc)
                continue
            created.append(Subscription(account=account, handle=handle))
        async with self._refresh_lock:
            self._slots = {slot.account: slot for slot in _dedupe(created)}
        logger.info("Subscribed %d of %d accounts", len(self._slots), len(requested))
        return list(self._slots.values())

    async def refresh_cycle(self) -> RefreshReport:
        """Tear down and re-establish every tracked subscription."""
        async with self._refresh_lock:
            report = RefreshReport()
            logger.info("Resubscribing %d accounts...", len(self._slots))
            # Slot results are committed even when the pass is cancelled.
            pending: Dict[WatchedAccount, Subscription] = dict(self._slots)
            try:
                for slot in list(self._slots.values()):
                    replacement = await self._refresh_slot(slot)
                    pending[slot.account] = replacement
                    if replacement.is_active:
                        report.refreshed.append(replacement.account)
                    else:
                        report.failed.append(replacement.account)
            finally:
                self._slots = {item.account: item for item in _dedupe(list(pending.values()))}
            if report.failed:
                logger.warning(
                    "Refresh cycle finished with %d failures out of %d accounts",
                    len(report.failed),
                    len(pending),
                )
            return report

    async def _refresh_slot(self, slot: Subscription) -> Subscription:
        account = slot.account
        if slot.handle is not None:
            try:
                await self._source.unsubscribe(slot.handle)
            except UnknownHandleError as exc:
                logger.warning("Handle %s for %s already gone at the source: %s", slot.handle, account, exc)
            except UnsubscribeError as exc:
                # Old handle state is unknown: keep it, no subscribe until teardown succeeds.
                logger.warning("Failed to unsubscribe %s (handle %s): %s", account, slot.handle, exc)
                return Subscription(account=account, handle=slot.handle, status=SubscriptionStatus.FAILED_PENDING_RETRY)
            except Exception as exc:
                logger.exception("Unexpected error unsubscribing %s (handle %s): %s", account, slot.handle, exc)
                return Subscription(account=account, handle=slot.handle, status=SubscriptionStatus.FAILED_PENDING_RETRY)
        try:
            handle = await self._source.subscribe(account)
        except SubscribeError as exc:
            logger.warning("Failed to resubscribe %s: %s", account, exc)
            return Subscription(account=account, handle=None, status=SubscriptionStatus.FAILED_PENDING_RETRY)
        except Exception as exc:
            logger.exception("Unexpected error resubscribing %s: %s", account, exc)
            return Subscription(account=account, handle=None, status=SubscriptionStatus.FAILED_PENDING_RETRY)
        if slot.status is SubscriptionStatus.FAILED_PENDING_RETRY:
            logger.info("Subscription for %s recovered", account)
        return Subscription(account=account, handle=handle)


def _dedupe(slots: Sequence[Subscription]) -> List[Subscription]:
    """Drop repeated accounts and repeated handles, keeping the first occurrence."""
    seen_accounts: Set[WatchedAccount] = set()
    seen_handles: Set[int] = set()
    unique: List[Subscription] = []
    for slot in slots:
        if slot.account in seen_accounts:
            logger.warning("Dropping duplicate subscription slot for %s", slot.account)
            continue
        if slot.handle is not None and slot.handle in seen_handles:
            logger.warning("Dropping duplicate subscription handle %s for %s", slot.handle, slot.account)
            continue
        seen_accounts.add(slot.account)
        if slot.handle is not None:
            seen_handles.add(slot.handle)
        unique.append(slot)
    return unique
