"""Backfill of a collection's NFTs from the Alchemy NFT API.

Used when webhook deliveries were missed. Every token reported by
``getNFTsForContract`` is pushed through the reconciler's mint path, so tier
materialization stays write-once; the current owner from ``getOwnersForNFT``
is then recorded if it differs.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx
import structlog

from vibe.services.blockchain.alchemy_notify import raise_for_alchemy_status
from vibe.services.blockchain.events import ZERO_ADDRESS, ChainEvent, EventType, decode_token_id
from vibe.services.blockchain.networks import alchemy_nft_api_url, network_for_chain_id
from vibe.services.exceptions import AlchemyNetworkError, MalformedEventError, UnknownCollectionError
from vibe.services.reconciler import NftReconciler, ReconcileStatus
from vibe.uow import UnitOfWorkFactory

logger = structlog.get_logger()


class AlchemyNftClient:
    """Minimal client for the Alchemy NFT API (v3)."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def _get(self, network: str, method: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{alchemy_nft_api_url(network, self.api_key)}/{method}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise AlchemyNetworkError(f"Request timeout after {self.timeout}s: {str(e)}")
        except httpx.HTTPError as e:
            raise AlchemyNetworkError(f"Network error: {str(e)}")

        raise_for_alchemy_status(response)
        return response.json()

    async def iter_nfts_for_contract(
        self, network: str, contract_address: str, page_size: int = 100
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield every NFT of a contract, following ``pageKey`` pagination."""
        page_key: str | None = None
        while True:
            params: dict[str, Any] = {
                "contractAddress": contract_address,
                "withMetadata": "true",
                "limit": page_size,
            }
            if page_key:
                params["pageKey"] = page_key

            page = await self._get(network, "getNFTsForContract", params)
            for nft in page.get("nfts") or []:
                yield nft

            page_key = page.get("pageKey")
            if not page_key:
                break

    async def get_owners_for_nft(self, network: str, contract_address: str, token_id: str) -> list[str]:
        page = await self._get(
            network,
            "getOwnersForNFT",
            {"contractAddress": contract_address, "tokenId": token_id},
        )
        return [owner.lower() for owner in page.get("owners") or []]


def convert_attributes_to_properties(attributes: list[dict[str, Any]] | None) -> dict[str, dict[str, Any]]:
    """Convert OpenSea-style ``attributes`` into the NFT property mapping.

    ``{"trait_type": "level", "value": "basic", "display_type": "string"}`` becomes
    ``{"level": {"name": "level", "type": "string", "value": "basic"}}``. The type
    defaults to "string" and attributes without a trait_type are skipped.
    """
    properties: dict[str, dict[str, Any]] = {}
    for attribute in attributes or []:
        if not isinstance(attribute, dict):
            continue
        trait_type = attribute.get("trait_type")
        if not trait_type:
            continue
        prop = {
            "name": trait_type,
            "type": attribute.get("display_type") or "string",
            "value": attribute.get("value"),
        }
        properties[str(trait_type)] = {k: v for k, v in prop.items() if v is not None}
    return properties


def _token_id_of(nft: dict[str, Any]) -> str:
    token_id = nft.get("tokenId")
    if token_id is None:
        token_id = (nft.get("id") or {}).get("tokenId")
    if isinstance(token_id, str) and token_id.startswith("0x"):
        return decode_token_id(token_id)
    if isinstance(token_id, (str, int)) and str(token_id).isdigit():
        return str(int(token_id))
    raise MalformedEventError(f"Invalid tokenId from NFT API: {token_id!r}")


@dataclass
class SyncReport:
    seen: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0


class CollectionSyncService:
    """Reconciles a collection against the NFTs the provider reports for it."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        nft_client: AlchemyNftClient,
        reconciler: NftReconciler,
        request_delay_seconds: float = 0.05,
    ):
        self.uow_factory = uow_factory
        self.nft_client = nft_client
        self.reconciler = reconciler
        self.request_delay_seconds = request_delay_seconds

    async def sync_collection(self, collection_id: UUID, dry_run: bool = False) -> SyncReport:
        """Sync every NFT of a collection.

        Args:
            collection_id: Collection to sync (must have chain_id and token_address)
            dry_run: Only fetch and report, do not write

        Returns:
            Counts of seen/created/updated/unchanged/skipped/failed tokens

        Raises:
            UnknownCollectionError: If the collection is missing or not deployed
            ValueError: If the collection's chain is unsupported
        """
        async with await self.uow_factory() as uow:
            collection = await uow.collections.get_by_id(collection_id)
        if collection is None:
            raise UnknownCollectionError(f"Collection {collection_id} not found")
        if not collection.token_address or collection.chain_id is None:
            raise UnknownCollectionError(f"Collection {collection_id} has no deployed token contract")

        network = network_for_chain_id(collection.chain_id)
        report = SyncReport()

        logger.info(
            "nft_sync.start",
            collection_id=str(collection_id),
            network=network,
            token_address=collection.token_address,
            dry_run=dry_run,
        )

        async for nft in self.nft_client.iter_nfts_for_contract(network, collection.token_address):
            report.seen += 1
            try:
                token_id = _token_id_of(nft)
            except MalformedEventError as e:
                logger.warning("nft_sync.invalid_token", error=str(e))
                report.skipped += 1
                continue

            owners = await self.nft_client.get_owners_for_nft(network, collection.token_address, token_id)
            await asyncio.sleep(self.request_delay_seconds)

            if not owners:
                logger.info("nft_sync.no_owner", token_id=token_id)
                report.skipped += 1
                continue
            owner = owners[0]

            if dry_run:
                logger.info("nft_sync.dry_run", token_id=token_id, owner_address=owner)
                continue

            attributes = ((nft.get("raw") or {}).get("metadata") or {}).get("attributes")
            status = await self._sync_token(
                network,
                collection.token_address,
                token_id,
                owner,
                convert_attributes_to_properties(attributes),
            )
            if status == ReconcileStatus.CREATED:
                report.created += 1
            elif status == ReconcileStatus.UPDATED:
                report.updated += 1
            elif status == ReconcileStatus.UNCHANGED:
                report.unchanged += 1
            elif status == ReconcileStatus.SKIPPED:
                report.skipped += 1
            else:
                report.failed += 1

        logger.info("nft_sync.complete", collection_id=str(collection_id), **vars(report))
        return report

    async def _sync_token(
        self,
        network: str,
        token_address: str,
        token_id: str,
        owner: str,
        fallback_properties: dict[str, Any],
    ) -> ReconcileStatus:
        mint = ChainEvent(
            network=network,
            from_address=ZERO_ADDRESS,
            to_address=owner,
            contract_address=token_address,
            token_id=token_id,
            event_type=EventType.MINT,
        )
        try:
            result = await self.reconciler.reconcile(mint, fallback_properties=fallback_properties)
            if result.nft is None or result.nft.owner_address == owner:
                return result.status

            # Already materialized: record the current holder through the transfer path
            transfer = ChainEvent(
                network=network,
                from_address=result.nft.owner_address or ZERO_ADDRESS,
                to_address=owner,
                contract_address=token_address,
                token_id=token_id,
                event_type=EventType.TRANSFER,
            )
            await self.reconciler.reconcile(transfer)
            return ReconcileStatus.UPDATED
        except Exception as e:
            logger.error(
                "nft_sync.token_failed",
                token_id=token_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ReconcileStatus.FAILED
