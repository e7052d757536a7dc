from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, status

from hts_platform import __version__
from hts_platform.config import get_config
from hts_platform.logging_utils import PHIFilter, get_logger
from hts_platform.ml.features import encode_features
from hts_platform.ml.scoring import ParseError, RiskScoringClient, TransportError
from .middleware import setup_middleware
from .models import FeatureResponse, Health, RiskScoreRequest, RiskScoreResponse, ScreeningRequest

logger = get_logger("api")

app = FastAPI(
    title="HTS Risk API",
    description="HIV testing services risk screening backed by the case-finding model",
    version=__version__,
    openapi_tags=[
        {"name": "health", "description": "Health check endpoints"},
        {"name": "hts", "description": "HTS feature encoding and risk scoring"},
    ]
)

setup_middleware(app)


def safe_http_exception(status_code: int, detail, original_error: Exception = None) -> HTTPException:
    """Create HTTP exception with PHI-safe error messages."""
    phi_filter = PHIFilter()
    if isinstance(detail, dict):
        safe_detail = {
            key: phi_filter._redact_phi_from_message(value) if isinstance(value, str) else value
            for key, value in detail.items()
        }
    else:
        safe_detail = phi_filter._redact_phi_from_message(str(detail))

    if original_error:
        logger.error("API error occurred", error=str(original_error))

    return HTTPException(status_code=status_code, detail=safe_detail)


async def get_scoring_client() -> AsyncIterator[RiskScoringClient]:
    async with RiskScoringClient(get_config().scoring) as scorer:
        yield scorer


@app.get("/health", response_model=Health, tags=["health"])
def health():
    """Health check endpoint."""
    config = get_config()
    return Health(status="ok", version=__version__, environment=config.env)


@app.post("/api/v1/hts/features", response_model=FeatureResponse, tags=["hts"])
def encode(req: ScreeningRequest) -> FeatureResponse:
    """Encode screening answers into the model's feature vector."""
    return FeatureResponse(features=encode_features(req.to_raw_input()))


@app.post("/api/v1/hts/risk-score", response_model=RiskScoreResponse, tags=["hts"])
async def risk_score(req: RiskScoreRequest, scorer: RiskScoringClient = Depends(get_scoring_client)):
    """Score HIV test risk for one client.

    Returns the risk tier and recommendation, or a ``no_result`` outcome when
    the model produced no prediction. Scorer failures map to 502.
    """
    features = encode_features(req.to_raw_input())
    outcome = await scorer.score(features, encounter_date=req.encounter_date, timeout=req.timeout_seconds)

    if isinstance(outcome, (TransportError, ParseError)):
        raise safe_http_exception(status.HTTP_502_BAD_GATEWAY, outcome.model_dump())

    return outcome
