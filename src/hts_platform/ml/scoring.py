"""Remote HTS case-finding score.

Wraps the single ``POST`` to the KenyaEMR ML scorer: builds the
``{modelConfigs, variableValues}`` envelope from an encoded
``FeatureVector``, reads ``result.predictions["probability(1)"]`` back and
classifies it into a ``RiskTier``.
"""

from __future__ import annotations

import asyncio
import math
import time
from datetime import date, datetime, timezone
from typing import Any, Literal, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer

from hts_platform.config import ScoringConfig, get_config
from hts_platform.logging_utils import get_logger
from hts_platform.ml.features import FeatureVector, HTSRawInput, encode_features
from hts_platform.ml.risk import NO_RESULTS_MESSAGE, RiskTier, classify_probability

logger = get_logger("hts_scoring")

PROBABILITY_KEY = "probability(1)"

JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ScoringError(Exception):
    """Base class for failures talking to the scoring endpoint."""


class ScoringTransportError(ScoringError):
    """Network failure, timeout, or an HTTP error status without a JSON body."""


class ScoringParseError(ScoringError):
    """The scorer answered with a body that is not JSON."""


class ModelConfigs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, protected_namespaces=())

    model_id: str = Field(alias="modelId")
    encounter_date: date = Field(alias="encounterDate")
    facility_id: str = Field(default="", alias="facilityId")
    debug: bool = True

    @field_serializer("encounter_date")
    def serialize_encounter_date(self, value: date) -> str:
        return value.strftime("%Y-%m-%d")

    @field_serializer("debug")
    def serialize_debug(self, value: bool) -> str:
        # The scorer reads this flag as a string.
        return "true" if value else "false"


class ScoringRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, protected_namespaces=())

    model_configs: ModelConfigs = Field(alias="modelConfigs")
    variable_values: FeatureVector = Field(alias="variableValues")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# Tagged scoring outcomes
class RiskScore(BaseModel):
    kind: Literal["ok"] = "ok"
    tier: RiskTier
    probability: float

    @computed_field
    @property
    def message(self) -> str:
        return self.tier.message


class NoResult(BaseModel):
    kind: Literal["no_result"] = "no_result"
    message: str = NO_RESULTS_MESSAGE


class TransportError(BaseModel):
    kind: Literal["transport_error"] = "transport_error"
    detail: str


class ParseError(BaseModel):
    kind: Literal["parse_error"] = "parse_error"
    detail: str


ScoringOutcome = Union[RiskScore, NoResult, TransportError, ParseError]


def extract_probability(body: Any) -> Optional[float]:
    """Read ``result.predictions["probability(1)"]`` from a scorer response.

    Returns None when the path is absent or the value is not a finite
    number.
    """
    result = body.get("result") if isinstance(body, dict) else None
    predictions = result.get("predictions") if isinstance(result, dict) else None
    if not isinstance(predictions, dict):
        return None

    raw = predictions.get(PROBABILITY_KEY)
    if raw is None or isinstance(raw, bool):
        return None
    try:
        probability = float(raw)
    except (TypeError, ValueError):
        return None
    return probability if math.isfinite(probability) else None


class RiskScoringClient:
    """Async client for the HTS case-finding scoring endpoint.

    Pass an ``httpx.AsyncClient`` to share a connection pool; otherwise the
    client owns one and closes it in ``aclose``.
    """

    def __init__(self, config: Optional[ScoringConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config if config is not None else get_config().scoring
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=JSON_HEADERS, timeout=None)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RiskScoringClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def build_request(self, features: FeatureVector, encounter_date: Optional[date] = None) -> ScoringRequest:
        return ScoringRequest(
            model_configs=ModelConfigs(
                model_id=self.config.model_id,
                encounter_date=encounter_date or datetime.now(timezone.utc).date(),
                facility_id=self.config.facility_id,
                debug=self.config.debug,
            ),
            variable_values=features,
        )

    async def _post(self, payload: dict) -> httpx.Response:
        return await self.client.post(self.config.endpoint_url, json=payload, headers=JSON_HEADERS)

    async def score(
        self,
        features: FeatureVector,
        *,
        encounter_date: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> ScoringOutcome:
        """Score one feature vector.

        The request is bounded by ``timeout`` seconds (default from config).
        Cancelling the awaiting task cancels the request.
        """
        request = self.build_request(features, encounter_date)
        deadline = timeout if timeout is not None else self.config.timeout_seconds
        start_time = time.time()

        try:
            response = await asyncio.wait_for(self._post(request.to_payload()), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning("Scoring request timed out", timeout_seconds=deadline)
            return TransportError(detail=f"Scoring request timed out after {deadline}s")
        except httpx.HTTPError as e:
            logger.error("Scoring request failed", error=type(e).__name__)
            return TransportError(detail=f"{type(e).__name__}: {e}")

        duration = time.time() - start_time
        try:
            body = response.json()
        except ValueError as e:
            if response.is_error:
                logger.error("Scoring endpoint returned an error", status_code=response.status_code)
                return TransportError(detail=f"Scoring endpoint returned HTTP {response.status_code}")
            logger.error("Scoring response is not JSON", status_code=response.status_code)
            return ParseError(detail=f"Invalid JSON in scoring response: {e}")

        if response.is_error:
            # Error statuses with a JSON body are read like any other answer
            logger.warning("Scoring endpoint returned an error status", status_code=response.status_code)

        probability = extract_probability(body)
        if probability is None:
            logger.info("Scoring response has no predictions", duration_seconds=round(duration, 3))
            return NoResult()

        tier = classify_probability(probability, self.config.thresholds)
        logger.info(
            "HTS risk scored",
            model_id=self.config.model_id,
            tier=tier.value,
            duration_seconds=round(duration, 3),
        )
        return RiskScore(tier=tier, probability=probability)

    async def recommend(
        self,
        raw: Union[HTSRawInput, Sequence[Any]],
        *,
        encounter_date: Optional[date] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Encode, score and return the provider-facing recommendation.

        Returns the tier message or ``"No results found"``. Transport and
        parse failures are raised as ``ScoringTransportError`` and
        ``ScoringParseError``.
        """
        outcome = await self.score(encode_features(raw), encounter_date=encounter_date, timeout=timeout)
        if isinstance(outcome, TransportError):
            raise ScoringTransportError(outcome.detail)
        if isinstance(outcome, ParseError):
            raise ScoringParseError(outcome.detail)
        return outcome.message


async def get_ml_risk_score(
    params: Union[HTSRawInput, Sequence[Any]],
    config: Optional[ScoringConfig] = None,
    timeout: Optional[float] = None,
) -> str:
    """One-shot recommendation for a positional screening answer list."""
    async with RiskScoringClient(config) as scorer:
        return await scorer.recommend(params, timeout=timeout)
