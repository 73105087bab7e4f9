"""Tests for tier range resolution."""

from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from vibe.models.tier import Tier
from vibe.services.tier_resolver import resolve_tier


def make_tier(tier_id: int, start: str | None, end: str | None) -> Tier:
    return Tier(collection_id=uuid4(), tier_id=tier_id, name=f"tier-{tier_id}", start_id=start, end_id=end)


@pytest.fixture
def tiers() -> list[Tier]:
    return [make_tier(0, "1", "100"), make_tier(1, "101", "200")]


def test_range_boundaries(tiers):
    a, b = tiers
    assert resolve_tier(tiers, "1") is a
    assert resolve_tier(tiers, "100") is a
    assert resolve_tier(tiers, "101") is b
    assert resolve_tier(tiers, 200) is b


def test_outside_every_range_returns_none(tiers):
    assert resolve_tier(tiers, "0") is None
    assert resolve_tier(tiers, "9999") is None


def test_no_tiers_returns_none():
    assert resolve_tier([], "1") is None


def test_tier_without_range_never_matches():
    assert resolve_tier([make_tier(0, None, None)], "1") is None


def test_arbitrary_precision_ranges():
    big = make_tier(0, str(2**64), str(2**256 - 1))
    assert resolve_tier([big], str(2**64)) is big
    assert resolve_tier([big], str(2**64 - 1)) is None


def test_overlap_lowest_tier_id_wins_and_is_logged():
    high = make_tier(5, "1", "50")
    low = make_tier(2, "40", "60")

    with capture_logs() as logs:
        result = resolve_tier([high, low], "45")

    assert result is low
    assert any(entry["event"] == "tier.range_overlap" for entry in logs)


def test_non_decimal_range_is_a_miss_and_logged():
    broken = make_tier(0, "abc", "100")
    valid = make_tier(1, "1", "100")

    with capture_logs() as logs:
        assert resolve_tier([broken], "50") is None
        assert resolve_tier([broken, valid], "50") is valid

    assert any(entry["event"] == "tier.invalid_range" for entry in logs)
