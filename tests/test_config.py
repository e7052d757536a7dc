import pytest
from pydantic import ValidationError

from hts_platform.config import DEFAULT_SCORING_ENDPOINT, UnifiedConfig, get_config


def test_defaults():
    config = UnifiedConfig()
    assert config.env == "local"
    assert config.scoring.endpoint_url == DEFAULT_SCORING_ENDPOINT
    assert config.scoring.model_id == "hts_xgb_1211_jan_2023"
    assert config.scoring.facility_id == ""
    assert config.scoring.debug is True
    assert config.scoring.thresholds.high == 0.028924102
    assert config.openmrs.rest_path == "/ws/rest/v1"
    assert config.openmrs.fhir_path == "/ws/fhir2/R4"


def test_nested_environment_overrides(monkeypatch):
    monkeypatch.setenv("HTS_SCORING__ENDPOINT_URL", "https://scorer.example.org/casefindingscore")
    monkeypatch.setenv("HTS_SCORING__FACILITY_ID", "13939")
    monkeypatch.setenv("HTS_OPENMRS__BASE_URL", "https://emr.example.org/openmrs")
    monkeypatch.setenv("HTS_LOG_LEVEL", "DEBUG")

    config = get_config()
    assert config.scoring.endpoint_url == "https://scorer.example.org/casefindingscore"
    assert config.scoring.facility_id == "13939"
    assert config.openmrs.base_url == "https://emr.example.org/openmrs"
    assert config.log_level == "DEBUG"


def test_get_config_is_cached():
    assert get_config() is get_config()


def test_from_yaml(tmp_path):
    path = tmp_path / "config.dev.yaml"
    path.write_text(
        "env: dev\n"
        "scoring:\n"
        "  endpoint_url: http://10.0.0.5:8600/openmrs/ws/rest/v1/keml/casefindingscore\n"
        "  timeout_seconds: 12\n"
        "  thresholds:\n"
        "    low: 0.01\n"
        "    medium: 0.02\n"
        "    high: 0.03\n",
        encoding="utf-8",
    )

    config = UnifiedConfig.from_yaml(path)
    assert config.env == "dev"
    assert config.scoring.timeout_seconds == 12
    assert config.scoring.thresholds.low == 0.01
    assert config.scoring.model_id == "hts_xgb_1211_jan_2023"


def test_get_config_loads_env_yaml(tmp_path, monkeypatch):
    configs = tmp_path / "configs"
    configs.mkdir()
    (configs / "config.staging.yaml").write_text("env: staging\nscoring:\n  facility_id: '15204'\n", encoding="utf-8")
    monkeypatch.setenv("ENV", "staging")

    config = get_config()
    assert config.env == "staging"
    assert config.is_production_environment
    assert config.scoring.facility_id == "15204"


def test_invalid_thresholds_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("scoring:\n  thresholds:\n    low: 0.5\n    medium: 0.2\n    high: 0.3\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        UnifiedConfig.from_yaml(path)


def test_timeout_must_be_positive(monkeypatch):
    monkeypatch.setenv("HTS_SCORING__TIMEOUT_SECONDS", "0")
    with pytest.raises(ValidationError):
        UnifiedConfig()
