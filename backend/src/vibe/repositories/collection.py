"""Collection repository for the vibe backend.

Provides case-insensitive lookup of collections by token contract address.
"""

from uuid import UUID

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vibe.models.collection import Collection


class CollectionRepository:
    """Repository for Collection entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, collection_id: UUID) -> Collection | None:
        """Retrieve collection by UUID."""
        result = await self.session.execute(select(Collection).where(Collection.id == collection_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_by_token_address(
        self, token_address: str, chain_id: int | None = None
    ) -> Collection | None:
        """Retrieve collection by token contract address (case-insensitive).

        Uses LOWER() on both sides. With chain_id given, collections on that
        chain and collections with no chain recorded both match, the exact chain
        first. Remaining ties go to the oldest collection so the result is
        deterministic.

        Args:
            token_address: Token contract address (0x...)
            chain_id: Chain of the event, if known

        Returns:
            Collection if found, None otherwise
        """
        stmt = select(Collection).where(
            func.lower(Collection.token_address) == token_address.lower()  # type: ignore[arg-type]
        )
        order_by = [Collection.created_at.asc(), Collection.id.asc()]  # type: ignore[attr-defined]
        if chain_id is not None:
            stmt = stmt.where(
                or_(Collection.chain_id == chain_id, Collection.chain_id.is_(None))  # type: ignore[arg-type,union-attr]
            )
            # Exact chain match before collections with no chain recorded
            order_by.insert(0, case((Collection.chain_id == chain_id, 0), else_=1))  # type: ignore[arg-type]
        stmt = stmt.order_by(*order_by).limit(1)

        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add(self, collection: Collection) -> Collection:
        """Persist new collection to database."""
        if collection.token_address:
            collection.token_address = collection.token_address.lower()
        self.session.add(collection)
        await self.session.flush()
        return collection
