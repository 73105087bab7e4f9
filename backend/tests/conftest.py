"""pytest fixtures for vibe backend tests.

Provides:
- engine: Function-scoped async engine with all tables created
  (in-memory SQLite by default, testcontainer PostgreSQL with TEST_DATABASE=postgres)
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- collection: A deployed collection with two tiers
"""

import os

# Settings are read at import time of vibe.app; set test values first
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ALCHEMY_WEBHOOK_SECRET", "test_webhook_secret")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import vibe.models  # noqa: E402,F401
from vibe.models.collection import Collection  # noqa: E402
from vibe.models.tier import Tier  # noqa: E402
from vibe.uow import create_uow_factory  # noqa: E402

CONTRACT_ADDRESS = "0x5b2b7e2a3c1a4a9d8f1e0c6b7a8d9e0f1a2b3c4d"
OWNER_ADDRESS = "0x1111111111111111111111111111111111111111"
OTHER_ADDRESS = "0x2222222222222222222222222222222222222222"
ZERO = "0x0000000000000000000000000000000000000000"

BASIC_TIER_METADATA = {
    "uses": ["@vibe_lab/referral"],
    "properties": {
        "level": {"name": "level", "type": "string", "value": "basic", "display_value": "Basic"},
        "holding_days": {
            "name": "holding_days",
            "type": "integer",
            "value": 125,
            "display_value": "125",
        },
    },
}

PREMIUM_TIER_METADATA = {
    "uses": [],
    "properties": {
        "level": {"name": "level", "type": "string", "value": "premium"},
    },
}


@pytest.fixture(scope="session")
def postgres_container():
    """Session-scoped PostgreSQL container, only started with TEST_DATABASE=postgres."""
    if os.environ.get("TEST_DATABASE") != "postgres":
        yield None
        return

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="test_vibe",
    ).with_bind_ports(5432, None) as container:
        yield container


@pytest_asyncio.fixture(scope="function")
async def engine(postgres_container) -> AsyncGenerator[AsyncEngine, None]:
    """Provide an engine with a fresh schema for every test."""
    if postgres_container is not None:
        engine = create_async_engine(postgres_container.get_connection_url(driver="psycopg"))
    else:
        # One shared connection so every session sees the same in-memory database
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory.

    Every UoW gets its own session on the test engine.
    """
    return create_uow_factory(session_factory)


@pytest_asyncio.fixture
async def collection(uow_factory) -> Collection:
    """Collection on ARB_MAINNET with tiers [1, 100] (basic) and [101, 200] (premium)."""
    async with await uow_factory() as uow:
        collection = await uow.collections.add(
            Collection(name="Vibe Genesis", chain_id=42161, token_address=CONTRACT_ADDRESS)
        )
        await uow.tiers.add(
            Tier(
                collection_id=collection.id,
                tier_id=0,
                name="Basic",
                start_id="1",
                end_id="100",
                tier_metadata=BASIC_TIER_METADATA,
            )
        )
        await uow.tiers.add(
            Tier(
                collection_id=collection.id,
                tier_id=1,
                name="Premium",
                start_id="101",
                end_id="200",
                tier_metadata=PREMIUM_TIER_METADATA,
            )
        )
    return collection


def nft_activity(
    token_id_hex: str,
    from_address: str = ZERO,
    to_address: str = OWNER_ADDRESS,
    contract_address: str = CONTRACT_ADDRESS,
    removed: bool = False,
) -> dict:
    """Build one Alchemy NFT_ACTIVITY activity record."""
    return {
        "fromAddress": from_address,
        "toAddress": to_address,
        "contractAddress": contract_address,
        "blockNum": "0x78b94e",
        "hash": "0x6ca7fed3e3ca7a97e774b0eab7c4e8e5ce2ca2a1c6b4e1e7bd3d8f3b1d1f6f8a",
        "erc721TokenId": token_id_hex,
        "category": "erc721",
        "log": {
            "address": contract_address,
            "transactionHash": "0x6ca7fed3e3ca7a97e774b0eab7c4e8e5ce2ca2a1c6b4e1e7bd3d8f3b1d1f6f8a",
            "logIndex": "0x2",
            "removed": removed,
        },
    }
