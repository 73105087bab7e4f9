"""Metadata extensions that generate extra NFT properties at mint time.

Tier metadata lists extension identifiers under ``uses``. Each identifier maps to a
handler in ``EXTENSIONS``; identifiers without a handler are ignored.
"""

import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

REFERRAL_EXTENSION = "@vibe_lab/referral"

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class ExtensionContext:
    """Inputs available to extension handlers."""

    collection_id: str
    token_id: str
    referral_code_length: int = 10


ExtensionHandler = Callable[[ExtensionContext], dict[str, dict[str, Any]]]


def generate_referral_code(length: int) -> str:
    """Generate a random alphanumeric referral code of the given length."""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def referral_extension(context: ExtensionContext) -> dict[str, dict[str, Any]]:
    """Add a ``referral_code`` property with a fresh random code."""
    code = generate_referral_code(context.referral_code_length)
    return {
        "referral_code": {
            "name": "Referral Code",
            "type": "string",
            "value": code,
            "display_value": code,
        }
    }


EXTENSIONS: dict[str, ExtensionHandler] = {
    REFERRAL_EXTENSION: referral_extension,
}
