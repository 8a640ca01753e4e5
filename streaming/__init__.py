"""
Websocket event source and subscription lifecycle for Hyperliquid user events.
"""

from __future__ import annotations

from streaming.manager import RefreshReport, SubscriptionManager
from streaming.streams import UserEventsStream, ws_url_for_network

__all__ = ["RefreshReport", "SubscriptionManager", "UserEventsStream", "ws_url_for_network"]
