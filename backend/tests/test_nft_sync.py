"""Tests for the collection backfill from the Alchemy NFT API."""

from uuid import uuid4

import httpx
import pytest

from vibe.services.blockchain.nft_sync import (
    AlchemyNftClient,
    CollectionSyncService,
    convert_attributes_to_properties,
)
from vibe.services.exceptions import UnknownCollectionError
from vibe.services.reconciler import NftReconciler

from conftest import OTHER_ADDRESS, OWNER_ADDRESS


def test_convert_attributes_to_properties():
    attributes = [
        {"trait_type": "level", "value": "basic"},
        {"trait_type": "holding_days", "value": 125, "display_type": "number"},
        {"value": "no trait type"},
    ]

    assert convert_attributes_to_properties(attributes) == {
        "level": {"name": "level", "type": "string", "value": "basic"},
        "holding_days": {"name": "holding_days", "type": "number", "value": 125},
    }
    assert convert_attributes_to_properties(None) == {}


class FakeNftApi:
    """Serves two pages of getNFTsForContract and fixed owners."""

    def __init__(self, owners: dict[str, list[str]]):
        self.owners = owners
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        if request.url.path.endswith("/getNFTsForContract"):
            if params.get("pageKey") == "page2":
                return httpx.Response(
                    200,
                    json={
                        "nfts": [
                            {
                                "tokenId": "150",
                                "raw": {"metadata": {"attributes": [{"trait_type": "color", "value": "red"}]}},
                            }
                        ]
                    },
                )
            return httpx.Response(
                200,
                json={"nfts": [{"tokenId": "50", "raw": {"metadata": {}}}, {"tokenId": "5000"}], "pageKey": "page2"},
            )
        if request.url.path.endswith("/getOwnersForNFT"):
            return httpx.Response(200, json={"owners": self.owners.get(params["tokenId"], [])})
        return httpx.Response(404)


@pytest.fixture
def nft_api() -> FakeNftApi:
    return FakeNftApi({"50": [OWNER_ADDRESS], "150": [OTHER_ADDRESS.upper().replace("0X", "0x")]})


@pytest.fixture
def sync_service(uow_factory, nft_api) -> CollectionSyncService:
    return CollectionSyncService(
        uow_factory=uow_factory,
        nft_client=AlchemyNftClient("key", transport=httpx.MockTransport(nft_api.handler)),
        reconciler=NftReconciler(uow_factory),
        request_delay_seconds=0,
    )


@pytest.mark.asyncio
class TestCollectionSync:
    async def test_sync_creates_nfts_through_mint_path(self, sync_service, uow_factory, nft_api, collection):
        report = await sync_service.sync_collection(collection.id)

        assert report.seen == 3
        assert report.created == 2
        assert report.skipped == 1  # token 5000 has no owner

        async with await uow_factory() as uow:
            nft_50 = await uow.nfts.get_by_token(collection.id, "50")
            nft_150 = await uow.nfts.get_by_token(collection.id, "150")

        assert nft_50.owner_address == OWNER_ADDRESS
        assert nft_50.properties["holding_days"]["value"] == 125
        assert nft_150.owner_address == OTHER_ADDRESS
        assert nft_150.properties == {"level": {"name": "level", "type": "string", "value": "premium"}}
        assert "arb-mainnet.g.alchemy.com" in str(nft_api.requests[0].url)

    async def test_resync_keeps_properties_and_updates_owner(self, sync_service, uow_factory, nft_api, collection):
        await sync_service.sync_collection(collection.id)
        async with await uow_factory() as uow:
            before = await uow.nfts.get_by_token(collection.id, "50")

        nft_api.owners["50"] = [OTHER_ADDRESS]
        report = await sync_service.sync_collection(collection.id)

        async with await uow_factory() as uow:
            after = await uow.nfts.get_by_token(collection.id, "50")

        assert report.created == 0
        assert report.updated == 1
        assert report.unchanged == 1
        assert after.owner_address == OTHER_ADDRESS
        assert after.properties == before.properties

    async def test_dry_run_writes_nothing(self, sync_service, uow_factory, collection):
        report = await sync_service.sync_collection(collection.id, dry_run=True)

        assert report.seen == 3
        async with await uow_factory() as uow:
            assert await uow.nfts.list_by_collection(collection.id) == []

    async def test_unknown_collection_raises(self, sync_service):
        with pytest.raises(UnknownCollectionError):
            await sync_service.sync_collection(uuid4())
