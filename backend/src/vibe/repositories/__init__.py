"""Repository layer for the vibe backend.

Provides data access abstractions for all domain entities.
Each repository is self-contained and receives the Unit of Work's session.
"""

from vibe.repositories.alchemy_webhook import AlchemyWebhookRepository
from vibe.repositories.collection import CollectionRepository
from vibe.repositories.nft import NftRepository
from vibe.repositories.tier import TierRepository

__all__ = [
    "AlchemyWebhookRepository",
    "CollectionRepository",
    "NftRepository",
    "TierRepository",
]
