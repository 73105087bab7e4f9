"""Collection entity - an NFT collection backed by one on-chain token contract."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from eth_utils.address import is_hex_address
from pydantic import field_validator
from sqlmodel import Field, SQLModel


class Collection(SQLModel, table=True):
    """Collection groups tiers and NFTs under a single token contract."""

    __tablename__ = "collections"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)
    chain_id: Optional[int] = Field(default=None, index=True)
    # None until the factory has deployed the token contract
    token_address: Optional[str] = Field(default=None, max_length=42, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("token_address")
    @classmethod
    def validate_token_address(cls, v: Optional[str]) -> Optional[str]:
        """Store token contract addresses lower-cased so lookups are case-insensitive."""
        if v is None:
            return v
        if not is_hex_address(v):
            raise ValueError("Token address must be 0x followed by 40 hex characters")
        return v.lower()
