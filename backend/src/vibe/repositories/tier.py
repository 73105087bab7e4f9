"""Tier repository for the vibe backend."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vibe.models.tier import Tier
from vibe.services.tier_resolver import resolve_tier


class TierRepository:
    """Repository for Tier entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def list_by_collection(self, collection_id: UUID) -> list[Tier]:
        """Retrieve all tiers of a collection ordered by tier_id ascending."""
        result = await self.session.execute(
            select(Tier)
            .where(Tier.collection_id == collection_id)  # type: ignore[arg-type]
            .order_by(Tier.tier_id.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_by_collection_and_token_id(
        self, collection_id: UUID, token_id: str
    ) -> Tier | None:
        """Retrieve the tier whose range covers token_id.

        Range bounds are arbitrary-precision decimal strings, so the comparison
        happens in Python over the (small) set of tiers of the collection.

        Returns:
            Matching tier, or None if no tier range covers the token id
        """
        tiers = await self.list_by_collection(collection_id)
        return resolve_tier(tiers, token_id)

    async def add(self, tier: Tier) -> Tier:
        """Persist new tier to database."""
        self.session.add(tier)
        await self.session.flush()
        return tier
