import pytest
from pydantic import ValidationError

from hts_platform.ml.risk import (
    DEFAULT_THRESHOLDS,
    NO_RESULTS_MESSAGE,
    RiskThresholds,
    RiskTier,
    classify_probability,
)


@pytest.mark.parametrize("probability,tier", [
    (0.03, RiskTier.VERY_HIGH),
    (0.02, RiskTier.HIGH),
    (0.01, RiskTier.MEDIUM),
    (0.005, RiskTier.MEDIUM),
    (0.001, RiskTier.LOW),
    (0.0, RiskTier.LOW),
    (1.0, RiskTier.VERY_HIGH),
])
def test_classify_scenarios(probability, tier):
    assert classify_probability(probability) is tier


def test_boundaries_fall_to_lower_tier():
    assert classify_probability(DEFAULT_THRESHOLDS.high) is RiskTier.HIGH
    assert classify_probability(DEFAULT_THRESHOLDS.medium) is RiskTier.MEDIUM
    assert classify_probability(DEFAULT_THRESHOLDS.low) is RiskTier.LOW


def test_classification_is_monotonic_over_unit_interval():
    ranks = [classify_probability(i / 10000).rank for i in range(10001)]
    assert ranks == sorted(ranks)
    assert set(ranks) == {0, 1, 2, 3}


def test_default_thresholds():
    assert DEFAULT_THRESHOLDS.low == 0.002625179
    assert DEFAULT_THRESHOLDS.medium == 0.010638781
    assert DEFAULT_THRESHOLDS.high == 0.028924102


@pytest.mark.parametrize("low,medium,high", [
    (0.02, 0.01, 0.03),
    (0.01, 0.01, 0.03),
    (0.01, 0.03, 0.03),
    (0.05, 0.04, 0.03),
])
def test_thresholds_must_be_strictly_ordered(low, medium, high):
    with pytest.raises(ValidationError):
        RiskThresholds(low=low, medium=medium, high=high)


def test_custom_thresholds():
    thresholds = RiskThresholds(low=0.1, medium=0.2, high=0.3)
    assert classify_probability(0.25, thresholds) is RiskTier.HIGH
    assert classify_probability(0.05, thresholds) is RiskTier.LOW


def test_tier_messages():
    assert RiskTier.VERY_HIGH.message.startswith("Client has a very high probability")
    assert RiskTier.VERY_HIGH.message.endswith("Testing is strongly recommended")
    assert RiskTier.HIGH.message.startswith("Client has a high probability")
    assert RiskTier.HIGH.message.endswith("Testing is strongly recommended")
    assert RiskTier.MEDIUM.message.endswith("Testing is recommended")
    assert RiskTier.LOW.message.endswith("Testing may not be recommended")
    assert NO_RESULTS_MESSAGE == "No results found"


def test_tier_order():
    assert [tier.rank for tier in RiskTier] == [0, 1, 2, 3]
    assert RiskTier.LOW.rank < RiskTier.MEDIUM.rank < RiskTier.HIGH.rank < RiskTier.VERY_HIGH.rank
