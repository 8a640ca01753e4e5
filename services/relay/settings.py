"""
Runtime settings for the relay, built once at startup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from exchanges.errors import ConfigurationError
from exchanges.hyperliquid.info import api_url_for_network
from services.notifications.dispatcher import DEFAULT_FAILURE_POLICIES, DeliveryMode, FailurePolicy
from streaming.streams import ws_url_for_network

_DEFAULTS: dict[str, Any] = {
    "VAULT_ADDRESS": "0xdfc24b077bc1425ad1dea75bcb6f8158e10df303",
    "HYPERLIQUID_NETWORK": "mainnet",
    "DELIVERY_MODE": "batched",
    "REFRESH_INTERVAL": 30,
    "FLUSH_INTERVAL": 1,
    "PACING_INTERVAL": 5,
    "HTTP_TIMEOUT": 10.0,
    "LOG_LEVEL": "INFO",
}


@dataclass(frozen=True, slots=True)
class RelaySettings:
    """Configuration shared by every relay component."""

    webhook_url: str
    vault_address: str = _DEFAULTS["VAULT_ADDRESS"]
    network: str = "mainnet"
    api_url: str = ""
    ws_url: str = ""
    delivery_mode: DeliveryMode = DeliveryMode.BATCHED
    failure_policy: FailurePolicy = FailurePolicy.DROP
    refresh_interval: float = 30.0
    flush_interval: float = 1.0
    pacing_interval: float = 5.0
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "RelaySettings":
        env = os.environ if environ is None else environ

        try:
            import config as config_module  # type: ignore
        except ModuleNotFoundError:
            config_module = None  # type: ignore

        def pick(env_key: str, config_key: str) -> Any:
            value = env.get(env_key)
            if value not in (None, ""):
                return value
            if config_module is not None and hasattr(config_module, config_key):
                return getattr(config_module, config_key)
            return _DEFAULTS[config_key]

        webhook_url = (env.get("DISCORD_WEBHOOK_URL") or "").strip()
        if not webhook_url:
            raise ConfigurationError("DISCORD_WEBHOOK_URL environment variable is required.")

        network = str(pick("HYPERLIQUID_NETWORK", "HYPERLIQUID_NETWORK")).strip().lower()
        if network not in {"mainnet", "testnet"}:
            raise ConfigurationError(f"Unsupported HYPERLIQUID_NETWORK: {network!r}")

        try:
            mode = DeliveryMode(str(pick("RELAY_DELIVERY_MODE", "DELIVERY_MODE")).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported delivery mode: {exc}") from exc

        raw_policy = (env.get("RELAY_FAILURE_POLICY") or "").strip().lower()
        try:
            policy = FailurePolicy(raw_policy) if raw_policy else DEFAULT_FAILURE_POLICIES[mode]
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported failure policy: {exc}") from exc

        log_level = str(pick("RELAY_LOG_LEVEL", "LOG_LEVEL")).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unsupported log level: {log_level!r}")

        return RelaySettings(
            webhook_url=webhook_url,
            vault_address=str(pick("RELAY_VAULT_ADDRESS", "VAULT_ADDRESS")).strip(),
            network=network,
            api_url=(env.get("HYPERLIQUID_API_URL") or "").strip() or api_url_for_network(network),
            ws_url=(env.get("HYPERLIQUID_WS_URL") or "").strip() or ws_url_for_network(network),
            delivery_mode=mode,
            failure_policy=policy,
            refresh_interval=_sanitize_interval(pick("RELAY_REFRESH_INTERVAL", "REFRESH_INTERVAL"), "refresh", 1),
            flush_interval=_sanitize_interval(pick("RELAY_FLUSH_INTERVAL", "FLUSH_INTERVAL"), "flush", 0.1),
            pacing_interval=_sanitize_interval(pick("RELAY_PACING_INTERVAL", "PACING_INTERVAL"), "pacing", 0),
            http_timeout=_sanitize_interval(pick("RELAY_HTTP_TIMEOUT", "HTTP_TIMEOUT"), "http timeout", 1),
            log_level=log_level,
        )


def _sanitize_interval(value: object, label: str, minimum: float, maximum: float = 3600) -> float:
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid {label} interval: {value!r}") from exc
    return max(minimum, min(maximum, seconds))
