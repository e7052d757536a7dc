"""Risk tiers for HTS case-finding scores.

The remote model returns the probability of a positive HIV test. Three fixed
cut points split that probability into four ordered tiers, each carrying the
recommendation shown to the provider.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


NO_RESULTS_MESSAGE = "No results found"


class RiskTier(str, Enum):
    """Ordered HTS risk tiers, lowest first."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def message(self) -> str:
        return RISK_MESSAGES[self]


_TIER_ORDER = (RiskTier.LOW, RiskTier.MEDIUM, RiskTier.HIGH, RiskTier.VERY_HIGH)

RISK_MESSAGES = {
    RiskTier.VERY_HIGH: (
        "Client has a very high probability of a HIV positive test result. "
        "Testing is strongly recommended"
    ),
    RiskTier.HIGH: (
        "Client has a high probability of a HIV positive test result. "
        "Testing is strongly recommended"
    ),
    RiskTier.MEDIUM: (
        "Client has a medium probability of a HIV positive test result. "
        "Testing is recommended"
    ),
    RiskTier.LOW: (
        "Client has a low probability of a HIV positive test result. "
        "Testing may not be recommended"
    ),
}


class RiskThresholds(BaseModel):
    """Probability cut points for the hts_xgb_1211_jan_2023 model."""
    model_config = ConfigDict(frozen=True)

    low: float = 0.002625179
    medium: float = 0.010638781
    high: float = 0.028924102

    @model_validator(mode="after")
    def thresholds_strictly_ordered(self) -> "RiskThresholds":
        if not self.low < self.medium < self.high:
            raise ValueError("Risk thresholds must satisfy low < medium < high")
        return self


DEFAULT_THRESHOLDS = RiskThresholds()


def classify_probability(probability: float, thresholds: RiskThresholds = DEFAULT_THRESHOLDS) -> RiskTier:
    """Map a probability to its risk tier.

    Tiers are checked from the highest cut point down. A probability exactly
    on a cut point belongs to the tier below it.
    """
    if probability > thresholds.high:
        return RiskTier.VERY_HIGH
    if probability > thresholds.medium:
        return RiskTier.HIGH
    if probability > thresholds.low:
        return RiskTier.MEDIUM
    return RiskTier.LOW
