"""Registration of contracts with Alchemy Notify webhooks.

Every deployment (dev, staging, production) shares one Alchemy team, so remote
webhooks are matched by network, type and a URL under this deployment's domain.
Local ``AlchemyWebhook`` rows record which addresses are already registered.
"""

from typing import Any

import structlog

from vibe.models.alchemy_webhook import WebhookType
from vibe.services.blockchain.alchemy_notify import AlchemyNotifyClient
from vibe.services.blockchain.networks import normalize_network
from vibe.services.exceptions import AlchemyApiError, AlchemyAuthError
from vibe.uow import UnitOfWorkFactory

logger = structlog.get_logger()

WEBHOOK_PATHS = {
    WebhookType.NFT_ACTIVITY: "/v1/alchemy/webhook/nft-activity",
    WebhookType.ADDRESS_ACTIVITY: "/v1/alchemy/webhook/address-activity",
}


class WebhookRegistry:
    """Keeps Alchemy webhooks pointed at the contracts this service tracks."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notify_client: AlchemyNotifyClient | None,
        domain: str,
        factory_contracts: dict[str, str] | None = None,
    ):
        """Initialize registry.

        Args:
            uow_factory: Factory for Unit of Work instances
            notify_client: Notify API client, or None when ALCHEMY_AUTH_TOKEN is unset
            domain: Public base URL webhooks are delivered to (ALCHEMY_DOMAIN)
            factory_contracts: Factory contract address per network
        """
        self.uow_factory = uow_factory
        self.notify_client = notify_client
        self.domain = domain.rstrip("/")
        self.factory_contracts = factory_contracts or {}

    @property
    def enabled(self) -> bool:
        return self.notify_client is not None and bool(self.domain)

    def _client(self) -> AlchemyNotifyClient:
        if self.notify_client is None:
            raise AlchemyAuthError("ALCHEMY_AUTH_TOKEN is not configured")
        return self.notify_client

    def webhook_url(self, webhook_type: WebhookType) -> str:
        return f"{self.domain}{WEBHOOK_PATHS[webhook_type]}"

    async def find_remote_webhook(self, network: str, webhook_type: WebhookType) -> dict[str, Any] | None:
        """Find this deployment's webhook of the given type on a network."""
        for webhook in await self._client().get_all_webhooks():
            if (
                webhook.get("network") == network
                and webhook.get("webhook_type") == webhook_type.value
                and (webhook.get("webhook_url") or "").startswith(self.domain)
            ):
                return webhook
        return None

    async def register_nft_activity_filter(self, network: str, contract_address: str) -> bool:
        """Watch an NFT contract with this deployment's NFT_ACTIVITY webhook.

        Returns:
            True if the contract was newly registered, False if it was already
            registered or registration is disabled
        """
        return await self._register(network, WebhookType.NFT_ACTIVITY, contract_address)

    async def register_address_activity(self, network: str, address: str) -> bool:
        """Watch an address with this deployment's ADDRESS_ACTIVITY webhook."""
        return await self._register(network, WebhookType.ADDRESS_ACTIVITY, address)

    async def _register(self, network: str, webhook_type: WebhookType, address: str) -> bool:
        network = normalize_network(network)
        address = address.lower()

        if not self.enabled:
            logger.info(
                "webhook_registry.disabled",
                network=network,
                webhook_type=webhook_type.value,
                address=address,
            )
            return False

        async with await self.uow_factory() as uow:
            existing = await uow.webhooks.get_by_address(address)
        if existing is not None:
            logger.debug("webhook_registry.already_registered", network=network, address=address)
            return False

        notify_client = self._client()
        remote = await self.find_remote_webhook(network, webhook_type)
        if remote is None:
            created = await notify_client.create_webhook(
                network=network,
                webhook_type=webhook_type.value,
                webhook_url=self.webhook_url(webhook_type),
                addresses=[address] if webhook_type == WebhookType.ADDRESS_ACTIVITY else None,
                nft_contract_addresses=[address] if webhook_type == WebhookType.NFT_ACTIVITY else None,
            )
            alchemy_id = created.get("id")
            logger.info(
                "webhook_registry.webhook_created",
                network=network,
                webhook_type=webhook_type.value,
                address=address,
                alchemy_id=alchemy_id,
            )
        else:
            alchemy_id = remote["id"]
            if webhook_type == WebhookType.NFT_ACTIVITY:
                await notify_client.add_nft_filters(alchemy_id, [address])
            else:
                await notify_client.add_addresses(alchemy_id, [address])
            logger.info(
                "webhook_registry.address_added",
                network=network,
                webhook_type=webhook_type.value,
                address=address,
                alchemy_id=alchemy_id,
            )

        async with await self.uow_factory() as uow:
            await uow.webhooks.upsert(network, webhook_type, address, alchemy_id=alchemy_id)
        return True

    async def ensure_factory_webhooks(self) -> int:
        """Make sure every configured factory contract is watched.

        Provider errors are logged per network and do not stop the others.

        Returns:
            Number of factory contracts newly registered
        """
        registered = 0
        for network, address in self.factory_contracts.items():
            try:
                if await self.register_address_activity(network, address):
                    registered += 1
            except AlchemyApiError as e:
                logger.error(
                    "webhook_registry.factory_registration_failed",
                    network=network,
                    address=address,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return registered
