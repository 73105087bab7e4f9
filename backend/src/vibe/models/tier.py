"""Tier entity - a contiguous token id range of a collection sharing one metadata template."""

from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import field_validator
from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class Tier(SQLModel, table=True):
    """Tier governs token ids in [start_id, end_id] of its collection.

    Token ids are kept as decimal strings because they may exceed 64 bits.
    Ranges stay NULL until the sale contract information is available.
    """

    __tablename__ = "tiers"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("collection_id", "tier_id", name="uq_tiers_collection_tier"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    collection_id: UUID = Field(foreign_key="collections.id", index=True)
    tier_id: int = Field(ge=0)
    name: str = Field(max_length=64)
    start_id: Optional[str] = Field(default=None, max_length=78)
    end_id: Optional[str] = Field(default=None, max_length=78)
    # {"uses": [...], "properties": {key: {name, type, value, display_value}}}
    tier_metadata: Optional[dict[str, Any]] = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )

    @field_validator("start_id", "end_id")
    @classmethod
    def validate_range_bound(cls, v: Optional[str]) -> Optional[str]:
        """Validate range bounds are non-negative decimal integers."""
        if v is None:
            return v
        if not v.isdigit():
            raise ValueError("Tier range bounds must be non-negative decimal integers")
        return str(int(v))

    def covers(self, token_id: int) -> bool:
        """Return True if token_id falls inside this tier's inclusive range.

        Raises:
            ValueError: If a stored bound is not a decimal integer
        """
        if self.start_id is None or self.end_id is None:
            return False
        # Table models skip validators, so rows written elsewhere are checked here
        if not (self.start_id.isdigit() and self.end_id.isdigit()):
            raise ValueError(f"Tier {self.tier_id} has a non-decimal range [{self.start_id}, {self.end_id}]")
        return int(self.start_id) <= token_id <= int(self.end_id)
