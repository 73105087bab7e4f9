"""NFT state reconciliation for classified chain events.

For every activity of an NFT_ACTIVITY delivery the reconciler:
1. Classifies it (mint / burn / transfer / unknown)
2. Resolves the collection from the contract address and the tier from the token id
3. Creates the NFT with tier-derived properties on mint, or records the new owner
   on transfer

Each activity runs in its own Unit of Work with a timeout, so one bad or slow
activity never aborts its siblings. Burns and unknown events are classified and
logged; they do not change stored state.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from vibe.models.collection import Collection
from vibe.models.nft import Nft
from vibe.services.blockchain.events import ChainEvent, EventType, is_removed, parse_activity
from vibe.services.blockchain.networks import chain_id_for_network
from vibe.services.exceptions import MalformedEventError, PersistenceError, UnknownCollectionError
from vibe.services.metadata.extensions import ExtensionContext
from vibe.services.metadata.materializer import materialize_properties
from vibe.uow import UnitOfWork, UnitOfWorkFactory

logger = structlog.get_logger()


class ReconcileStatus(str, Enum):
    """Outcome of reconciling one chain event."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ReconcileResult:
    """Per-event outcome, for logging and the webhook response."""

    activity_index: int
    status: ReconcileStatus
    event: ChainEvent | None = None
    nft: Nft | None = None
    reason: str | None = None
    retryable: bool = False


@dataclass
class BatchResult:
    """Outcome of one webhook delivery."""

    results: list[ReconcileResult] = field(default_factory=list)

    @property
    def nfts(self) -> list[Nft]:
        return [result.nft for result in self.results if result.nft is not None]

    @property
    def failed(self) -> list[ReconcileResult]:
        return [result for result in self.results if result.status == ReconcileStatus.FAILED]

    @property
    def has_retryable_failures(self) -> bool:
        return any(result.retryable for result in self.failed)

    def count(self, status: ReconcileStatus) -> int:
        return sum(1 for result in self.results if result.status == status)


class NftReconciler:
    """Applies classified chain events to stored NFT state."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        referral_code_length: int = 10,
        call_timeout_seconds: float = 5.0,
    ):
        """Initialize reconciler.

        Args:
            uow_factory: Factory producing a fresh UnitOfWork per event
            referral_code_length: Length of generated referral codes
            call_timeout_seconds: Upper bound for the persistence work of one event
        """
        self.uow_factory = uow_factory
        self.referral_code_length = referral_code_length
        self.call_timeout_seconds = call_timeout_seconds

    async def process_activities(self, network: str, activities: list[Any]) -> BatchResult:
        """Reconcile every activity of a delivery, in order.

        Malformed activities, unknown contracts and per-event failures are
        recorded in the result; nothing is raised out of this method for them.
        """
        batch = BatchResult()

        for index, activity in enumerate(activities):
            if is_removed(activity):
                logger.warning("reconcile.removed_log", activity_index=index)
                batch.results.append(
                    ReconcileResult(index, ReconcileStatus.SKIPPED, reason="removed_log")
                )
                continue

            try:
                events = parse_activity(activity, network)
            except MalformedEventError as e:
                logger.warning("reconcile.malformed_activity", activity_index=index, error=str(e))
                batch.results.append(
                    ReconcileResult(index, ReconcileStatus.SKIPPED, reason=f"malformed: {e}")
                )
                continue

            for event in events:
                batch.results.append(await self._reconcile_safely(index, event))

        logger.info(
            "reconcile.batch_complete",
            network=network,
            activities=len(activities),
            created=batch.count(ReconcileStatus.CREATED),
            updated=batch.count(ReconcileStatus.UPDATED),
            unchanged=batch.count(ReconcileStatus.UNCHANGED),
            skipped=batch.count(ReconcileStatus.SKIPPED),
            failed=batch.count(ReconcileStatus.FAILED),
        )
        return batch

    async def _reconcile_safely(self, index: int, event: ChainEvent) -> ReconcileResult:
        log = logger.bind(
            activity_index=index,
            event_type=event.event_type.value,
            contract_address=event.contract_address,
            token_id=event.token_id,
            tx_hash=event.tx_hash,
        )
        try:
            return await asyncio.wait_for(
                self.reconcile(event, activity_index=index), timeout=self.call_timeout_seconds
            )
        except UnknownCollectionError as e:
            log.info("reconcile.unknown_collection", error=str(e))
            return ReconcileResult(index, ReconcileStatus.SKIPPED, event=event, reason="unknown_collection")
        except asyncio.TimeoutError:
            log.error("reconcile.timeout", timeout_seconds=self.call_timeout_seconds)
            return ReconcileResult(
                index, ReconcileStatus.FAILED, event=event, reason="timeout", retryable=True
            )
        except (SQLAlchemyError, PersistenceError) as e:
            log.error("reconcile.persistence_error", error=str(e), error_type=type(e).__name__)
            return ReconcileResult(
                index, ReconcileStatus.FAILED, event=event, reason="persistence", retryable=True
            )
        except Exception as e:
            log.error(
                "reconcile.activity_failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=e,
            )
            return ReconcileResult(
                index, ReconcileStatus.FAILED, event=event, reason="unexpected", retryable=False
            )

    async def reconcile(
        self,
        event: ChainEvent,
        activity_index: int = 0,
        fallback_properties: dict[str, Any] | None = None,
    ) -> ReconcileResult:
        """Apply one classified event to stored state.

        fallback_properties are used on the mint path when the tier yields no
        properties (e.g. on-chain attributes during a collection sync).

        Raises:
            UnknownCollectionError: If no collection tracks event.contract_address
        """
        if event.event_type in (EventType.BURN, EventType.UNKNOWN):
            logger.info(
                "reconcile.no_state_change",
                event_type=event.event_type.value,
                contract_address=event.contract_address,
                token_id=event.token_id,
            )
            return ReconcileResult(
                activity_index, ReconcileStatus.SKIPPED, event=event, reason=event.event_type.value
            )

        async with await self.uow_factory() as uow:
            collection = await uow.collections.get_by_token_address(
                event.contract_address, chain_id=chain_id_for_network(event.network)
            )
            if collection is None:
                raise UnknownCollectionError(f"Unknown collection {event.contract_address}")

            if event.event_type == EventType.MINT:
                nft, status = await self._apply_mint(uow, collection, event, fallback_properties)
            else:
                nft, status = await self._apply_transfer(uow, collection, event)

        return ReconcileResult(activity_index, status, event=event, nft=nft)

    async def _apply_mint(
        self,
        uow: UnitOfWork,
        collection: Collection,
        event: ChainEvent,
        fallback_properties: dict[str, Any] | None = None,
    ) -> tuple[Nft, ReconcileStatus]:
        existing = await uow.nfts.get_by_token(collection.id, event.token_id)
        if existing is not None and existing.materialized:
            logger.info(
                "reconcile.duplicate_mint",
                collection_id=str(collection.id),
                token_id=event.token_id,
            )
            return existing, ReconcileStatus.UNCHANGED

        tier = await uow.tiers.get_by_collection_and_token_id(collection.id, event.token_id)
        if tier is None:
            logger.info(
                "reconcile.tier_range_miss",
                collection_id=str(collection.id),
                token_id=event.token_id,
            )

        properties = materialize_properties(
            tier.tier_metadata if tier else None,
            ExtensionContext(
                collection_id=str(collection.id),
                token_id=event.token_id,
                referral_code_length=self.referral_code_length,
            ),
        )
        if not properties and fallback_properties:
            properties = dict(fallback_properties)

        nft, created = await uow.nfts.upsert_on_mint(
            collection_id=collection.id,
            token_id=event.token_id,
            properties=properties,
            tier_id=tier.id if tier else None,
            owner_address=event.to_address,
        )

        logger.info(
            "reconcile.nft_created" if created else "reconcile.nft_materialized",
            collection_id=str(collection.id),
            token_id=event.token_id,
            tier_id=tier.tier_id if tier else None,
            property_keys=sorted(nft.properties),
        )
        return nft, ReconcileStatus.CREATED if created else ReconcileStatus.UPDATED

    async def _apply_transfer(
        self, uow: UnitOfWork, collection: Collection, event: ChainEvent
    ) -> tuple[Nft, ReconcileStatus]:
        nft, created = await uow.nfts.get_or_create_on_transfer(collection.id, event.token_id)
        if created:
            logger.warning(
                "reconcile.transfer_before_mint",
                collection_id=str(collection.id),
                token_id=event.token_id,
            )

        nft = await uow.nfts.update_owner(nft, event.to_address)
        logger.info(
            "reconcile.owner_updated",
            collection_id=str(collection.id),
            token_id=event.token_id,
            owner_address=event.to_address,
        )
        return nft, ReconcileStatus.CREATED if created else ReconcileStatus.UPDATED
