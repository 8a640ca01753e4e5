"""
Error taxonomy shared by the relay components.
"""

from __future__ import annotations

from typing import Optional


class RelayError(RuntimeError):
    """Base class for relay failures."""


class ConfigurationError(RelayError):
    """Raised when required settings are missing or invalid."""


class ResolutionError(RelayError):
    """Raised when the watched account list cannot be resolved."""

    def __init__(self, message: str, payload: Optional[object] = None) -> None:
        super().__init__(message)
        self.payload = payload


class SubscribeError(RelayError):
    """Raised when the event source refuses or fails a subscription."""

    def __init__(self, message: str, account: Optional[str] = None) -> None:
        super().__init__(message)
        self.account = account


class UnsubscribeError(RelayError):
    """Raised when a subscription handle cannot be torn down."""

    def __init__(self, message: str, handle: Optional[int] = None, account: Optional[str] = None) -> None:
        super().__init__(message)
        self.handle = handle
        self.account = account


class DeliveryError(RelayError):
    """Raised when the webhook rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnknownHandleError(UnsubscribeError):
    """Raised when the event source holds no subscription for the handle."""
