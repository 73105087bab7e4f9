"""Tier resolution by token id range."""

from collections.abc import Iterable

import structlog

from vibe.models.tier import Tier

logger = structlog.get_logger()


def _covers(tier: Tier, token_id: int) -> bool:
    try:
        return tier.covers(token_id)
    except ValueError as e:
        logger.warning(
            "tier.invalid_range",
            collection_id=str(tier.collection_id),
            tier_id=tier.tier_id,
            error=str(e),
        )
        return False


def resolve_tier(tiers: Iterable[Tier], token_id: str | int) -> Tier | None:
    """Find the tier whose [start_id, end_id] range contains token_id.

    Tiers are checked in ascending ``tier_id`` order and the first match wins.
    Overlapping ranges are a data error in the tier table; they are logged,
    not repaired. A tier whose bounds are not decimal integers never matches.

    Args:
        tiers: Tiers of one collection
        token_id: Decimal token id (string or int)

    Returns:
        Matching tier, or None when no range covers the id
    """
    token_id_int = int(token_id)
    matches = [tier for tier in sorted(tiers, key=lambda t: t.tier_id) if _covers(tier, token_id_int)]

    if not matches:
        return None

    if len(matches) > 1:
        logger.warning(
            "tier.range_overlap",
            token_id=str(token_id_int),
            collection_id=str(matches[0].collection_id),
            tier_ids=[tier.tier_id for tier in matches],
        )

    return matches[0]
