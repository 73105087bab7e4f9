"""Alchemy Notify API client for managing webhooks.

Wraps the REST endpoints used to list, create and extend webhooks:
- GET   /team-webhooks
- POST  /create-webhook
- PATCH /update-webhook-nft-filters
- PATCH /update-webhook-addresses
"""

from typing import Any

import httpx

from vibe.services.exceptions import (
    AlchemyAuthError,
    AlchemyNetworkError,
    AlchemyRateLimitError,
    AlchemyValidationError,
)


def raise_for_alchemy_status(response: httpx.Response) -> None:
    """Raise the matching AlchemyApiError subclass for a non-2xx response."""
    if response.status_code == 429:
        raise AlchemyRateLimitError(f"Rate limit exceeded: {response.text}")
    elif response.status_code >= 500:
        raise AlchemyNetworkError(f"Service unavailable ({response.status_code}): {response.text}")
    elif response.status_code in (401, 403):
        raise AlchemyAuthError(f"Unauthorized ({response.status_code}): {response.text}")
    elif response.status_code >= 400:
        raise AlchemyValidationError(f"Bad request ({response.status_code}): {response.text}")


class AlchemyNotifyClient:
    """Webhook management client authenticated with the Alchemy auth token."""

    def __init__(
        self,
        auth_token: str,
        base_url: str = "https://dashboard.alchemy.com/api",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Notify client.

        Args:
            auth_token: Alchemy auth token (from ALCHEMY_AUTH_TOKEN env var)
            base_url: Notify API base URL
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.auth_token = auth_token
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "X-Alchemy-Token": auth_token,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise AlchemyNetworkError(f"Request timeout after {self.timeout}s: {str(e)}")
        except httpx.HTTPError as e:
            raise AlchemyNetworkError(f"Network error: {str(e)}")

        raise_for_alchemy_status(response)

        if not response.content:
            return {}
        return response.json()

    async def get_all_webhooks(self) -> list[dict[str, Any]]:
        """List every webhook of the team.

        Returns:
            Webhook dicts with keys such as id, network, webhook_type, webhook_url, is_active
        """
        result = await self._request("GET", "/team-webhooks")
        return result.get("data") or []

    async def create_webhook(
        self,
        network: str,
        webhook_type: str,
        webhook_url: str,
        addresses: list[str] | None = None,
        nft_contract_addresses: list[str] | None = None,
    ) -> dict[str, Any]:
        """Create a webhook.

        Args:
            network: Alchemy network name (e.g. "ARB_MAINNET")
            webhook_type: "NFT_ACTIVITY" or "ADDRESS_ACTIVITY"
            webhook_url: URL Alchemy will POST deliveries to
            addresses: Watched addresses (ADDRESS_ACTIVITY)
            nft_contract_addresses: Watched NFT contracts (NFT_ACTIVITY)

        Returns:
            Created webhook dict (contains "id")
        """
        payload: dict[str, Any] = {
            "network": network,
            "webhook_type": webhook_type,
            "webhook_url": webhook_url,
        }
        if addresses:
            payload["addresses"] = addresses
        if nft_contract_addresses:
            payload["nft_filters"] = [{"contract_address": a} for a in nft_contract_addresses]

        result = await self._request("POST", "/create-webhook", json=payload)
        return result.get("data") or {}

    async def add_nft_filters(self, webhook_id: str, contract_addresses: list[str]) -> None:
        """Add NFT contract filters to an existing NFT_ACTIVITY webhook."""
        await self._request(
            "PATCH",
            "/update-webhook-nft-filters",
            json={
                "webhook_id": webhook_id,
                "nft_filters_to_add": [{"contract_address": a} for a in contract_addresses],
                "nft_filters_to_remove": [],
            },
        )

    async def add_addresses(self, webhook_id: str, addresses: list[str]) -> None:
        """Add watched addresses to an existing ADDRESS_ACTIVITY webhook."""
        await self._request(
            "PATCH",
            "/update-webhook-addresses",
            json={
                "webhook_id": webhook_id,
                "addresses_to_add": addresses,
                "addresses_to_remove": [],
            },
        )
