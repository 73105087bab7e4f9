"""Unit of Work pattern tests.

Tests focus on transaction management:
- Successful commits persist changes
- Exceptions trigger rollback and propagate
- Operations across repositories are atomic
"""

import pytest

from vibe.models.collection import Collection
from vibe.models.tier import Tier

from conftest import CONTRACT_ADDRESS


@pytest.mark.asyncio
async def test_uow_commits_on_successful_exit(uow_factory):
    """Changes made within the context persist after the context exits."""
    async with await uow_factory() as uow:
        collection = await uow.collections.add(
            Collection(name="Committed", chain_id=1, token_address=CONTRACT_ADDRESS)
        )
        collection_id = collection.id

    async with await uow_factory() as uow:
        found = await uow.collections.get_by_id(collection_id)
        assert found is not None
        assert found.name == "Committed"


@pytest.mark.asyncio
async def test_uow_rollback_on_exception(uow_factory):
    """An exception inside the context rolls back and is re-raised."""
    with pytest.raises(ValueError, match="Simulated error"):
        async with await uow_factory() as uow:
            await uow.collections.add(
                Collection(name="Rolled back", chain_id=1, token_address=CONTRACT_ADDRESS)
            )
            raise ValueError("Simulated error")

    async with await uow_factory() as uow:
        assert await uow.collections.get_by_token_address(CONTRACT_ADDRESS) is None


@pytest.mark.asyncio
async def test_uow_provides_all_repositories(uow_factory):
    async with await uow_factory() as uow:
        assert uow.collections is not None
        assert uow.tiers is not None
        assert uow.nfts is not None
        assert uow.webhooks is not None


@pytest.mark.asyncio
async def test_uow_atomic_multi_repository_operation(uow_factory):
    """Collection and tier created in one UoW commit together."""
    async with await uow_factory() as uow:
        collection = await uow.collections.add(
            Collection(name="Atomic", chain_id=42161, token_address=CONTRACT_ADDRESS)
        )
        await uow.tiers.add(
            Tier(collection_id=collection.id, tier_id=0, name="Basic", start_id="1", end_id="10")
        )

    async with await uow_factory() as uow:
        tiers = await uow.tiers.list_by_collection(collection.id)
        assert [tier.name for tier in tiers] == ["Basic"]
