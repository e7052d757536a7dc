"""Pydantic models for the HTS risk API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from hts_platform.ml.features import FeatureVector, HTSRawInput
from hts_platform.ml.scoring import NoResult, ParseError, RiskScore, TransportError


class Health(BaseModel):
    status: str
    version: str
    environment: str
    timestamp: datetime = Field(default_factory=datetime.now)


class ScreeningRequest(BaseModel):
    """HTS screening answers as named fields.

    Coded answers are OpenMRS concept UUIDs; unknown codes are accepted and
    encoded as "not recognized".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    age: Optional[float] = Field(default=None, ge=0, le=120, description="Age in years at test")
    entry_point: Optional[Union[str, int]] = Field(default=None, description="HTS entry point concept")
    ever_tested: Optional[str] = Field(default=None, description="Ever tested for HIV (yes/no concept)")
    gender: Optional[str] = Field(default=None, description="M or F")
    disability: Optional[str] = Field(default=None, description="Disability (yes/no concept)")
    marital_status: Optional[str] = Field(default=None, description="Marital status concept")
    months_since_last_test: Optional[float] = Field(default=None, ge=0, description="Months since last HIV test")
    population_type: Optional[str] = Field(default=None, description="Population type concept")
    self_tested: Optional[str] = Field(default=None, description="Self tested for HIV (yes/no concept)")
    tb_screening: Optional[str] = Field(default=None, description="TB screening outcome concept")
    test_strategy: Optional[str] = Field(default=None, description="HTS testing strategy concept")
    tested_as: Optional[str] = Field(default=None, description="Tested as individual or couple")

    def to_raw_input(self) -> HTSRawInput:
        return HTSRawInput(**self.model_dump())


class RiskScoreRequest(ScreeningRequest):
    encounter_date: Optional[date] = Field(default=None, description="Encounter date, defaults to today")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, le=120, description="Scoring deadline")


class FeatureResponse(BaseModel):
    features: FeatureVector


RiskScoreResponse = Union[RiskScore, NoResult]
ScoringFailure = Union[TransportError, ParseError]
