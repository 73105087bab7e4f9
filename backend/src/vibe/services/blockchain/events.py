"""NFT activity classification for Alchemy NFT_ACTIVITY webhooks.

This module turns raw webhook activity records into ``ChainEvent`` objects:
1. Validates the from/to/contract addresses
2. Decodes hex token ids to decimal strings (arbitrary precision)
3. Classifies each transfer as mint, burn, transfer or unknown

Nothing here touches the network or the database.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_utils.address import is_hex_address

from vibe.services.exceptions import MalformedEventError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_HEX_TOKEN_ID = re.compile(r"^0x[0-9a-fA-F]+$")


class EventType(str, Enum):
    """Classification of an ERC-721/ERC-1155 transfer log."""

    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChainEvent:
    """One observed token transfer, normalised for reconciliation.

    Addresses are lower-cased and ``token_id`` is a decimal string.
    """

    network: str
    from_address: str
    to_address: str
    contract_address: str
    token_id: str
    event_type: EventType
    tx_hash: str | None = None
    log_index: int | None = None


def classify_transfer(from_address: str, to_address: str) -> EventType:
    """Classify a transfer from its endpoints.

    - mint: from is the zero address, to is not
    - burn: to is the zero address, from is not
    - transfer: neither is the zero address
    - unknown: both are the zero address

    Args:
        from_address: Sender address (any case)
        to_address: Recipient address (any case)

    Returns:
        EventType for the pair
    """
    from_zero = from_address.lower() == ZERO_ADDRESS
    to_zero = to_address.lower() == ZERO_ADDRESS

    if from_zero and to_zero:
        return EventType.UNKNOWN
    if from_zero:
        return EventType.MINT
    if to_zero:
        return EventType.BURN
    return EventType.TRANSFER


def decode_token_id(token_id_hex: str) -> str:
    """Decode a 0x-prefixed hex token id into its decimal string.

    Python ints are arbitrary precision, so ids beyond 2**53 (or 2**64) are exact.

    Raises:
        MalformedEventError: If the value is not 0x followed by at least one hex digit
    """
    if not isinstance(token_id_hex, str) or not _HEX_TOKEN_ID.match(token_id_hex):
        raise MalformedEventError(f"Invalid hex token id: {token_id_hex!r}")
    return str(int(token_id_hex[2:], 16))


def _require_address(activity: dict[str, Any], key: str) -> str:
    value = activity.get(key)
    if not value:
        raise MalformedEventError(f"Missing {key} in activity")
    if not isinstance(value, str) or not is_hex_address(value):
        raise MalformedEventError(f"Invalid {key}: {value!r}")
    return value.lower()


def parse_activity(activity: dict[str, Any], network: str) -> list[ChainEvent]:
    """Parse one Alchemy NFT activity record into chain events.

    ERC-721 activities carry a single ``erc721TokenId``. ERC-1155 activities carry
    ``erc1155Metadata: [{tokenId, value}, ...]`` and yield one event per entry.

    Args:
        activity: Raw activity dict from ``event.activity``
        network: Alchemy network name from ``event.network`` (e.g. "ARB_MAINNET")

    Returns:
        List of chain events (one for ERC-721, one or more for ERC-1155)

    Raises:
        MalformedEventError: If addresses or token ids are missing or invalid
    """
    if not isinstance(activity, dict):
        raise MalformedEventError(f"Activity must be an object, got {type(activity).__name__}")

    from_address = _require_address(activity, "fromAddress")
    to_address = _require_address(activity, "toAddress")
    contract_address = _require_address(activity, "contractAddress")

    if activity.get("erc721TokenId") is not None:
        raw_token_ids = [activity["erc721TokenId"]]
    elif activity.get("erc1155Metadata"):
        try:
            raw_token_ids = [entry["tokenId"] for entry in activity["erc1155Metadata"]]
        except (KeyError, TypeError) as e:
            raise MalformedEventError(f"Invalid erc1155Metadata: {e}") from e
    else:
        raise MalformedEventError("Missing erc721TokenId in activity")

    log = activity.get("log") or {}
    tx_hash = log.get("transactionHash") or activity.get("hash")
    log_index = log.get("logIndex")
    if isinstance(log_index, str):
        try:
            log_index = int(log_index, 16)
        except ValueError:
            log_index = None

    event_type = classify_transfer(from_address, to_address)
    return [
        ChainEvent(
            network=network,
            from_address=from_address,
            to_address=to_address,
            contract_address=contract_address,
            token_id=decode_token_id(raw_token_id),
            event_type=event_type,
            tx_hash=tx_hash,
            log_index=log_index,
        )
        for raw_token_id in raw_token_ids
    ]


def is_removed(activity: dict[str, Any]) -> bool:
    """Return True if the activity's log was removed by a chain reorg."""
    log = activity.get("log") if isinstance(activity, dict) else None
    return bool(log and log.get("removed", False))
