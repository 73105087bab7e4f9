"""Nft repository for the vibe backend.

Provides race-safe create-or-fetch for NFTs keyed by (collection_id, token_id).
Creation uses INSERT ... ON CONFLICT DO NOTHING followed by a re-read, so two
concurrent deliveries of the same mint can never produce two rows.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from vibe.models.nft import Nft


class NftRepository:
    """Repository for Nft entities.

    Methods:
    - get_by_token: Lookup by (collection_id, token_id)
    - upsert_on_mint: Create with tier-derived properties, or materialize once
    - get_or_create_on_transfer: Create a minimal record if missing
    - update_owner: Record the current holder
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    def _insert(self):
        # ON CONFLICT support lives in the dialect-specific insert constructs
        if self.session.get_bind().dialect.name == "sqlite":
            return sqlite.insert(Nft)
        return postgresql.insert(Nft)

    async def get_by_token(self, collection_id: UUID, token_id: str) -> Nft | None:
        """Retrieve NFT by collection and decimal token id.

        Returns:
            Nft if found, None otherwise
        """
        result = await self.session.execute(
            select(Nft)
            .where(Nft.collection_id == collection_id, Nft.token_id == token_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _insert_if_absent(self, **values: Any) -> bool:
        """Insert a row unless (collection_id, token_id) already exists.

        Returns:
            True if this call created the row, False if it already existed
        """
        now = datetime.now(timezone.utc)
        stmt = (
            self._insert()
            .values(id=uuid4(), created_at=now, updated_at=now, **values)
            .on_conflict_do_nothing(index_elements=["collection_id", "token_id"])
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def upsert_on_mint(
        self,
        collection_id: UUID,
        token_id: str,
        properties: dict[str, Any],
        tier_id: UUID | None = None,
        owner_address: str | None = None,
    ) -> tuple[Nft, bool]:
        """Create an NFT with tier-derived properties, or materialize it once.

        - Row absent: insert it materialized, owned by owner_address.
        - Row present but not materialized (created by an earlier out-of-order
          transfer): set properties and tier once; owner is left alone.
        - Row present and materialized: untouched. Redelivered mints keep the
          properties (and referral code) generated the first time.

        Returns:
            Tuple of (nft, created)
        """
        created = await self._insert_if_absent(
            collection_id=collection_id,
            token_id=token_id,
            tier_id=tier_id,
            owner_address=owner_address,
            properties=properties,
            materialized=True,
        )

        if not created:
            # Conditional UPDATE keeps materialization write-once under concurrency
            await self.session.execute(
                update(Nft)
                .where(
                    Nft.collection_id == collection_id,  # type: ignore[arg-type]
                    Nft.token_id == token_id,  # type: ignore[arg-type]
                    Nft.materialized.is_(False),  # type: ignore[attr-defined]
                )
                .values(
                    properties=properties,
                    tier_id=tier_id,
                    materialized=True,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )

        await self.session.flush()
        nft = await self.get_by_token(collection_id, token_id)
        if nft is None:
            raise RuntimeError(f"NFT {collection_id}/{token_id} missing after upsert")
        return nft, created

    async def get_or_create_on_transfer(self, collection_id: UUID, token_id: str) -> tuple[Nft, bool]:
        """Fetch an NFT, creating a minimal unmaterialized record if it is missing.

        A transfer can arrive before its mint when deliveries are out of order;
        the later mint will materialize the record.

        Returns:
            Tuple of (nft, created)
        """
        created = await self._insert_if_absent(
            collection_id=collection_id,
            token_id=token_id,
            properties={},
            materialized=False,
        )
        await self.session.flush()
        nft = await self.get_by_token(collection_id, token_id)
        if nft is None:
            raise RuntimeError(f"NFT {collection_id}/{token_id} missing after insert")
        return nft, created

    async def update_owner(self, nft: Nft, owner_address: str) -> Nft:
        """Record the current holder (last write wins)."""
        nft.owner_address = owner_address
        nft.updated_at = datetime.now(timezone.utc)
        self.session.add(nft)
        await self.session.flush()
        await self.session.refresh(nft)
        return nft

    async def list_by_collection(self, collection_id: UUID, limit: int = 100, offset: int = 0) -> list[Nft]:
        """Retrieve NFTs of a collection ordered by creation time."""
        result = await self.session.execute(
            select(Nft)
            .where(Nft.collection_id == collection_id)  # type: ignore[arg-type]
            .order_by(Nft.created_at.asc())  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
