"""Unit tests for Alchemy webhook signature validation.

Only requests signed with the webhook signing key may reach the reconciler.
"""

import hashlib
import hmac

import pytest

from vibe.services.blockchain.alchemy_signature import (
    compute_alchemy_signature,
    validate_alchemy_signature,
)


class TestAlchemySignatureValidation:
    """Test suite for HMAC signature validation."""

    @pytest.fixture
    def signing_key(self) -> str:
        return "whsec_test_signing_key"

    @pytest.fixture
    def sample_payload(self) -> bytes:
        return b'{"webhookId":"wh_test123","id":"whevt_001","type":"NFT_ACTIVITY","event":{}}'

    @pytest.fixture
    def valid_signature(self, sample_payload: bytes, signing_key: str) -> str:
        return hmac.new(
            key=signing_key.encode("utf-8"), msg=sample_payload, digestmod=hashlib.sha256
        ).hexdigest()

    def test_compute_matches_hmac_sha256(self, sample_payload, signing_key, valid_signature):
        assert compute_alchemy_signature(sample_payload, signing_key) == valid_signature

    def test_valid_signature_acceptance(self, sample_payload, valid_signature, signing_key):
        assert validate_alchemy_signature(sample_payload, valid_signature, signing_key) is True

    def test_uppercase_signature_acceptance(self, sample_payload, valid_signature, signing_key):
        assert validate_alchemy_signature(sample_payload, valid_signature.upper(), signing_key) is True

    def test_tampered_payload_rejection(self, sample_payload, valid_signature, signing_key):
        tampered = sample_payload.replace(b"NFT_ACTIVITY", b"ADDRESS_ACTIVITY")
        assert validate_alchemy_signature(tampered, valid_signature, signing_key) is False

    def test_wrong_signing_key_rejection(self, sample_payload, valid_signature):
        assert validate_alchemy_signature(sample_payload, valid_signature, "other_key") is False

    @pytest.mark.parametrize("signature", ["", "0" * 64, "not_a_hex_string_xyz"])
    def test_bad_signature_rejection(self, sample_payload, signing_key, signature):
        assert validate_alchemy_signature(sample_payload, signature, signing_key) is False

    def test_missing_signing_key_rejects_everything(self, sample_payload, valid_signature):
        """An unset ALCHEMY_WEBHOOK_SECRET must never validate a request."""
        assert validate_alchemy_signature(sample_payload, valid_signature, "") is False

    def test_unicode_payload_handling(self, signing_key):
        payload = '{"name":"Vibe 🔒 Genesis"}'.encode("utf-8")
        signature = compute_alchemy_signature(payload, signing_key)
        assert validate_alchemy_signature(payload, signature, signing_key) is True

    def test_empty_payload_handling(self, signing_key):
        signature = compute_alchemy_signature(b"", signing_key)
        assert validate_alchemy_signature(b"", signature, signing_key) is True
