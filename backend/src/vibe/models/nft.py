"""Nft entity - reconciled state of one token of a collection."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class Nft(SQLModel, table=True):
    """Nft is keyed by (collection_id, token_id).

    Tier-derived properties are written once, when ``materialized`` flips to True.
    Ownership is updated on every transfer.
    """

    __tablename__ = "nfts"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("collection_id", "token_id", name="uq_nfts_collection_token"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    collection_id: UUID = Field(foreign_key="collections.id", index=True)
    tier_id: Optional[UUID] = Field(default=None, foreign_key="tiers.id")
    token_id: str = Field(max_length=78)  # decimal string, up to uint256
    owner_address: Optional[str] = Field(default=None, max_length=42, index=True)
    properties: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    materialized: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
