"""AlchemyWebhook entity - addresses registered with the Alchemy Notify API."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class WebhookType(str, Enum):
    """Alchemy Notify webhook types used by this service."""

    NFT_ACTIVITY = "NFT_ACTIVITY"
    ADDRESS_ACTIVITY = "ADDRESS_ACTIVITY"


class AlchemyWebhook(SQLModel, table=True):
    """Local record of an address watched by an Alchemy webhook."""

    __tablename__ = "alchemy_webhooks"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    type: WebhookType = Field(index=True)
    address: str = Field(max_length=42, unique=True)
    network: str = Field(max_length=50)
    alchemy_id: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
