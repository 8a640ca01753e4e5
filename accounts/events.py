"""
Domain types for watched accounts, subscriptions and inbound account events.

Inbound websocket frames are decoded into `EventMessage` variants. Only the
per-account fills report is consumed downstream; every other channel is kept as
an `OtherMessage` so consumers can drop it without treating it as an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True, slots=True)
class WatchedAccount:
    """Fixed-width (20 byte hex) account address, normalised to lower case."""

    address: str

    def __post_init__(self) -> None:
        value = (self.address or "").strip()
        if not _ADDRESS_RE.match(value):
            raise ValueError(f"Invalid account address: {self.address!r}")
        object.__setattr__(self, "address", value.lower())

    def __str__(self) -> str:
        return self.address


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    FAILED_PENDING_RETRY = "failed_pending_retry"


@dataclass(frozen=True, slots=True)
class Subscription:
    """One subscription slot owned by the subscription manager.

    ``handle`` is ``None`` once the previous handle has been torn down and no
    replacement could be installed yet.
    """

    account: WatchedAccount
    handle: Optional[int]
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is SubscriptionStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class FillEvent:
    """A single trade execution reported for a watched account."""

    coin: str
    side: str
    size: str
    account: Optional[str] = None
    price: Optional[str] = None
    direction: Optional[str] = None
    closed_pnl: Optional[str] = None
    hash: Optional[str] = None
    time: Optional[int] = None

    @classmethod
    def from_payload(cls, entry: Mapping[str, Any], account: Optional[str] = None) -> "FillEvent":
        try:
            fill_time = int(entry["time"]) if entry.get("time") is not None else None
        except (TypeError, ValueError):
            fill_time = None
        return cls(
            coin=str(entry.get("coin") or ""),
            side=str(entry.get("side") or ""),
            size=str(entry.get("sz") if entry.get("sz") is not None else ""),
            account=account,
            price=_optional_str(entry.get("px")),
            direction=_optional_str(entry.get("dir")),
            closed_pnl=_optional_str(entry.get("closedPnl")),
            hash=_optional_str(entry.get("hash")),
            time=fill_time,
        )


@dataclass(frozen=True, slots=True)
class UserFillsReport:
    """Fills pushed on the ``user`` channel, in arrival order."""

    fills: tuple[FillEvent, ...]
    account: Optional[str] = None


@dataclass(frozen=True, slots=True)
class OtherMessage:
    """Any frame that is not a fills report (pong, acks, funding, ...)."""

    channel: str
    data: Any = field(default=None)


EventMessage = Union[UserFillsReport, OtherMessage]


def decode_message(payload: Mapping[str, Any]) -> EventMessage:
    """Turn a parsed websocket frame into an `EventMessage` variant."""
    channel = str(payload.get("channel") or "")
    data = payload.get("data")
    if channel == "user" and isinstance(data, Mapping) and "fills" in data:
        account = _optional_str(data.get("user"))
        if account:
            account = account.lower()
        raw_fills = data.get("fills") or []
        fills = tuple(
            FillEvent.from_payload(entry, account=account)
            for entry in raw_fills
            if isinstance(entry, Mapping)
        )
        return UserFillsReport(fills=fills, account=account)
    return OtherMessage(channel=channel, data=data)


def _optional_str(value: object) -> Optional[str]:
    if value is None:
        return None
    return str(value)
