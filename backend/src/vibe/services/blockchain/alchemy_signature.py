"""HMAC signature validation for Alchemy webhooks.

Alchemy signs every delivery with HMAC-SHA256 over the raw request body using the
webhook's signing key and sends the hex digest in ``X-Alchemy-Signature``.
"""

import hashlib
import hmac


def compute_alchemy_signature(raw_body: bytes, signing_key: str) -> str:
    """Compute the hex HMAC-SHA256 digest Alchemy would send for raw_body."""
    return hmac.new(key=signing_key.encode("utf-8"), msg=raw_body, digestmod=hashlib.sha256).hexdigest()


def validate_alchemy_signature(raw_body: bytes, signature: str, signing_key: str) -> bool:
    """Validate an Alchemy webhook signature.

    Args:
        raw_body: Exact request body bytes, before JSON parsing
        signature: Value of the X-Alchemy-Signature header (hex, any case)
        signing_key: Webhook signing key from the Alchemy dashboard

    Returns:
        True if the signature matches, False otherwise (including empty inputs)
    """
    if not signature or not signing_key:
        return False

    expected = compute_alchemy_signature(raw_body, signing_key)

    # Constant-time comparison; hex digests are compared case-insensitively
    return hmac.compare_digest(expected.lower(), signature.lower())
