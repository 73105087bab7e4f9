"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from vibe.models.alchemy_webhook import AlchemyWebhook, WebhookType
from vibe.models.collection import Collection
from vibe.models.nft import Nft
from vibe.models.tier import Tier

__all__ = [
    "AlchemyWebhook",
    "Collection",
    "Nft",
    "Tier",
    "WebhookType",
]
