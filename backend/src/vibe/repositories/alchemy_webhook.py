"""AlchemyWebhook repository for the vibe backend.

Tracks which addresses have already been registered with Alchemy Notify.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from vibe.models.alchemy_webhook import AlchemyWebhook, WebhookType


class AlchemyWebhookRepository:
    """Repository for AlchemyWebhook entities.

    Provides UPSERT behavior (INSERT ... ON CONFLICT (address) DO UPDATE).
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_address(self, address: str) -> AlchemyWebhook | None:
        """Retrieve the webhook record for an address (case-insensitive)."""
        result = await self.session.execute(
            select(AlchemyWebhook)
            .where(func.lower(AlchemyWebhook.address) == address.lower())  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_network(self, network: str, webhook_type: WebhookType) -> list[AlchemyWebhook]:
        """Retrieve webhook records of one type on one network."""
        result = await self.session.execute(
            select(AlchemyWebhook).where(
                AlchemyWebhook.network == network,  # type: ignore[arg-type]
                AlchemyWebhook.type == webhook_type,  # type: ignore[arg-type]
            )
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        network: str,
        webhook_type: WebhookType,
        address: str,
        alchemy_id: str | None = None,
    ) -> AlchemyWebhook:
        """Create or update the local record for an address.

        Args:
            network: Alchemy network name (e.g. "ARB_MAINNET")
            webhook_type: Webhook type watching the address
            address: Contract address (stored lower-cased)
            alchemy_id: Alchemy webhook id the address was added to

        Returns:
            The stored record
        """
        address = address.lower()
        insert = sqlite.insert if self.session.get_bind().dialect.name == "sqlite" else postgresql.insert
        stmt = insert(AlchemyWebhook).values(
            id=uuid4(),
            type=webhook_type,
            address=address,
            network=network,
            alchemy_id=alchemy_id,
            created_at=datetime.now(timezone.utc),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["address"],
            set_={"type": webhook_type, "network": network, "alchemy_id": alchemy_id},
        )
        await self.session.execute(stmt)
        await self.session.flush()

        record = await self.get_by_address(address)
        if record is None:
            raise RuntimeError(f"Webhook record for {address} missing after upsert")
        return record
