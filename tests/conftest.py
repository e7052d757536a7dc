"""
Pytest fixtures for HTS risk tests. Outbound HTTP goes through httpx.MockTransport.
"""

from __future__ import annotations

import httpx
import pytest

from hts_platform.config import OpenMRSConfig, ScoringConfig, get_config
from hts_platform.ml.scoring import RiskScoringClient
from hts_platform.openmrs.client import OpenMRSClient

SCORER_URL = "http://scorer.test/openmrs/ws/rest/v1/keml/casefindingscore"
OPENMRS_URL = "http://openmrs.test/openmrs"


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch, tmp_path):
    """Isolate every test from local config files, .env and cached settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.delenv("HTS_CONFIG_PATH", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def scoring_config():
    return ScoringConfig(endpoint_url=SCORER_URL, timeout_seconds=5)


@pytest.fixture
def scorer_factory(scoring_config):
    """Build a RiskScoringClient whose requests are answered by ``handler``."""

    def _make(handler, config: ScoringConfig = None) -> RiskScoringClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RiskScoringClient(config or scoring_config, client=client)

    return _make


@pytest.fixture
def openmrs_factory():
    """Build an OpenMRSClient whose requests are answered by ``handler``."""

    def _make(handler) -> OpenMRSClient:
        client = httpx.AsyncClient(base_url=OPENMRS_URL, transport=httpx.MockTransport(handler))
        return OpenMRSClient(OpenMRSConfig(base_url=OPENMRS_URL), client=client)

    return _make

