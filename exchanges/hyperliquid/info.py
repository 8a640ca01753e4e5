"""
Hyperliquid info endpoint client used to resolve the accounts to watch.

Only the ``vaultDetails`` request is needed: the vault's
``relationship.data.childAddresses`` list becomes the set of watched accounts.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from accounts.events import WatchedAccount
from exchanges.errors import ResolutionError

MAINNET_API_URL = "https://api.hyperliquid.xyz"
TESTNET_API_URL = "https://api.hyperliquid-testnet.xyz"

logger = logging.getLogger(__name__)


class HyperliquidInfoClient:
    """Async client for the Hyperliquid ``/info`` endpoint."""

    name = "hyperliquid-info"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url or MAINNET_API_URL
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=transport)

    async def fetch_child_addresses(self, vault_address: str) -> list[WatchedAccount]:
        payload = await self._post_info({"type": "vaultDetails", "vaultAddress": vault_address})
        try:
            raw_addresses = payload["relationship"]["data"]["childAddresses"]
        except (KeyError, TypeError) as exc:
            raise ResolutionError(
                f"vaultDetails response for {vault_address} has no child addresses: missing {exc}",
                payload=payload,
            ) from exc
        if not isinstance(raw_addresses, list):
            raise ResolutionError(
                f"vaultDetails childAddresses for {vault_address} is not a list",
                payload=payload,
            )
        accounts: list[WatchedAccount] = []
        for raw in raw_addresses:
            try:
                accounts.append(WatchedAccount(str(raw)))
            except ValueError as exc:
                raise ResolutionError(str(exc), payload=payload) from exc
        logger.info("Resolved %d child accounts for vault %s", len(accounts), vault_address)
        return accounts

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _post_info(self, body: dict) -> Any:
        try:
            response = await self._client.post(
                "/info",
                content=json.dumps(body),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ResolutionError(
                f"Hyperliquid info request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ResolutionError(f"Hyperliquid info request failed: {exc!r}") from exc
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise ResolutionError(f"Hyperliquid info response is not valid JSON: {exc}") from exc


def api_url_for_network(network: Optional[str]) -> str:
    return TESTNET_API_URL if (network or "").strip().lower() == "testnet" else MAINNET_API_URL
