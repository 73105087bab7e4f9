"""Copy tier metadata onto a newly minted NFT.

Materialization runs once per NFT, on the creation path of the reconciler.
Tier properties are copied verbatim; extensions listed in ``metadata.uses``
add generated properties (e.g. a referral code).
"""

import copy
from collections.abc import Mapping
from typing import Any

import structlog

from vibe.services.metadata.extensions import EXTENSIONS, ExtensionContext

logger = structlog.get_logger()


def materialize_properties(
    tier_metadata: dict[str, Any] | None,
    context: ExtensionContext,
) -> dict[str, dict[str, Any]]:
    """Build the property mapping for a new NFT from its tier's metadata.

    Each ``{name, type, value, display_value}`` entry is copied as stored,
    including null values and non-string display values. Entries that are
    not objects are skipped.

    Args:
        tier_metadata: Tier ``metadata`` JSON (may be None or lack ``properties``)
        context: Token identity and extension settings

    Returns:
        Property mapping keyed like the tier's properties, plus extension properties.
        Empty when the tier has no metadata.
    """
    if not tier_metadata:
        return {}

    properties: dict[str, dict[str, Any]] = {}

    for key, raw_property in (tier_metadata.get("properties") or {}).items():
        if not isinstance(raw_property, Mapping):
            logger.warning(
                "materialize.invalid_property",
                property_key=key,
                collection_id=context.collection_id,
                property_type=type(raw_property).__name__,
            )
            continue
        properties[key] = copy.deepcopy(dict(raw_property))

    for extension_id in tier_metadata.get("uses") or []:
        handler = EXTENSIONS.get(extension_id)
        if handler is None:
            continue
        properties.update(handler(context))
        logger.debug(
            "materialize.extension_applied",
            extension=extension_id,
            collection_id=context.collection_id,
            token_id=context.token_id,
        )

    return properties
