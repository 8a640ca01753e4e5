"""
Hyperliquid venue adapters.

Submodules encapsulate the REST info endpoint used for account resolution.
The websocket event source lives in ``streaming.streams``.
"""

from .info import HyperliquidInfoClient  # noqa: F401
