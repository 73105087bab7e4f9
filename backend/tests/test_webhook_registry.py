"""Tests for Alchemy Notify webhook registration."""

import json

import httpx
import pytest

from vibe.models.alchemy_webhook import WebhookType
from vibe.services.blockchain.alchemy_notify import AlchemyNotifyClient
from vibe.services.blockchain.webhook_registry import WebhookRegistry
from vibe.services.exceptions import (
    AlchemyAuthError,
    AlchemyNetworkError,
    AlchemyRateLimitError,
    AlchemyValidationError,
)

from conftest import CONTRACT_ADDRESS

DOMAIN = "https://api.vibe.test"
FACTORY = "0x" + "ef" * 20


class FakeNotifyApi:
    """Records Notify API calls and serves a configurable webhook list."""

    def __init__(self, webhooks: list[dict] | None = None, status_code: int = 200):
        self.webhooks = webhooks or []
        self.status_code = status_code
        self.requests: list[tuple[str, str, dict | None]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        assert request.headers["X-Alchemy-Token"] == "auth_token"

        if self.status_code != 200:
            return httpx.Response(self.status_code, text="error")
        if request.url.path.endswith("/team-webhooks"):
            return httpx.Response(200, json={"data": self.webhooks})
        if request.url.path.endswith("/create-webhook"):
            return httpx.Response(200, json={"data": {"id": "wh_new", **body}})
        return httpx.Response(200, json={})

    def client(self) -> AlchemyNotifyClient:
        return AlchemyNotifyClient("auth_token", transport=httpx.MockTransport(self.handler))


def remote_webhook(webhook_type: str, url: str = DOMAIN + "/v1/alchemy/webhook/nft-activity") -> dict:
    return {"id": "wh_existing", "network": "ARB_MAINNET", "webhook_type": webhook_type, "webhook_url": url}


@pytest.mark.asyncio
class TestRegisterNftActivityFilter:
    async def test_creates_webhook_when_none_exists(self, uow_factory):
        api = FakeNotifyApi()
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN)

        assert await registry.register_nft_activity_filter("arb-mainnet", CONTRACT_ADDRESS) is True

        method, path, body = api.requests[-1]
        assert (method, path) == ("POST", "/api/create-webhook")
        assert body["network"] == "ARB_MAINNET"
        assert body["webhook_type"] == "NFT_ACTIVITY"
        assert body["webhook_url"] == DOMAIN + "/v1/alchemy/webhook/nft-activity"
        assert body["nft_filters"] == [{"contract_address": CONTRACT_ADDRESS}]

        async with await uow_factory() as uow:
            record = await uow.webhooks.get_by_address(CONTRACT_ADDRESS)
        assert record.alchemy_id == "wh_new"
        assert record.type == WebhookType.NFT_ACTIVITY

    async def test_adds_filter_to_existing_webhook_of_this_domain(self, uow_factory):
        api = FakeNotifyApi(
            [
                remote_webhook("NFT_ACTIVITY", url="https://staging.other.test/v1/alchemy/webhook/nft-activity"),
                remote_webhook("NFT_ACTIVITY"),
            ]
        )
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN)

        assert await registry.register_nft_activity_filter("ARB_MAINNET", CONTRACT_ADDRESS) is True

        method, path, body = api.requests[-1]
        assert (method, path) == ("PATCH", "/api/update-webhook-nft-filters")
        assert body["webhook_id"] == "wh_existing"
        assert body["nft_filters_to_add"] == [{"contract_address": CONTRACT_ADDRESS}]

    async def test_already_registered_address_is_a_no_op(self, uow_factory):
        api = FakeNotifyApi()
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN)
        await registry.register_nft_activity_filter("ARB_MAINNET", CONTRACT_ADDRESS)
        calls = len(api.requests)

        assert await registry.register_nft_activity_filter("ARB_MAINNET", CONTRACT_ADDRESS.upper()) is False
        assert len(api.requests) == calls

    async def test_disabled_without_client_or_domain(self, uow_factory):
        assert await WebhookRegistry(uow_factory, None, DOMAIN).register_nft_activity_filter(
            "ARB_MAINNET", CONTRACT_ADDRESS
        ) is False
        assert await WebhookRegistry(uow_factory, FakeNotifyApi().client(), "").register_nft_activity_filter(
            "ARB_MAINNET", CONTRACT_ADDRESS
        ) is False

    async def test_remote_lookup_without_client_raises(self, uow_factory):
        registry = WebhookRegistry(uow_factory, None, DOMAIN)

        with pytest.raises(AlchemyAuthError):
            await registry.find_remote_webhook("ARB_MAINNET", WebhookType.NFT_ACTIVITY)


@pytest.mark.asyncio
class TestEnsureFactoryWebhooks:
    async def test_registers_each_configured_factory(self, uow_factory):
        api = FakeNotifyApi()
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN, {"ARB_MAINNET": FACTORY})

        assert await registry.ensure_factory_webhooks() == 1

        method, path, body = api.requests[-1]
        assert path == "/api/create-webhook"
        assert body["webhook_type"] == "ADDRESS_ACTIVITY"
        assert body["addresses"] == [FACTORY]
        assert body["webhook_url"] == DOMAIN + "/v1/alchemy/webhook/address-activity"

    async def test_adds_address_to_existing_address_webhook(self, uow_factory):
        api = FakeNotifyApi(
            [remote_webhook("ADDRESS_ACTIVITY", url=DOMAIN + "/v1/alchemy/webhook/address-activity")]
        )
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN, {"ARB_MAINNET": FACTORY})

        assert await registry.ensure_factory_webhooks() == 1

        method, path, body = api.requests[-1]
        assert (method, path) == ("PATCH", "/api/update-webhook-addresses")
        assert body == {"webhook_id": "wh_existing", "addresses_to_add": [FACTORY], "addresses_to_remove": []}

    async def test_provider_errors_are_logged_not_raised(self, uow_factory):
        api = FakeNotifyApi(status_code=503)
        registry = WebhookRegistry(uow_factory, api.client(), DOMAIN, {"ARB_MAINNET": FACTORY})

        assert await registry.ensure_factory_webhooks() == 0
        async with await uow_factory() as uow:
            assert await uow.webhooks.get_by_address(FACTORY) is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code, error",
    [
        (429, AlchemyRateLimitError),
        (500, AlchemyNetworkError),
        (401, AlchemyAuthError),
        (403, AlchemyAuthError),
        (400, AlchemyValidationError),
    ],
)
async def test_notify_error_classification(status_code, error):
    client = FakeNotifyApi(status_code=status_code).client()
    with pytest.raises(error):
        await client.get_all_webhooks()
