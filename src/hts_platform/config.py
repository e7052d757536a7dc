from __future__ import annotations

import os
from pathlib import Path
from typing import Literal
from functools import lru_cache

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from hts_platform.ml.risk import RiskThresholds


# Historical single-deployment scorer; override with HTS_SCORING__ENDPOINT_URL.
DEFAULT_SCORING_ENDPOINT = "http://197.248.44.228:8600/openmrs/ws/rest/v1/keml/casefindingscore"

DEFAULT_ENCOUNTER_REPRESENTATION = (
    "custom:(uuid,encounterDatetime,encounterType:(uuid,name),location:(uuid,name),"
    "patient:(uuid,display),encounterProviders:(uuid,provider:(uuid,name)),"
    "obs:(uuid,obsDatetime,voided,groupMembers,concept:(uuid,name:(uuid,name)),"
    "value:(uuid,name:(uuid,name),names:(uuid,conceptNameType,name))),form:(uuid,name))"
)


class OpenMRSConfig(BaseModel):
    base_url: str = Field(default="http://localhost:8080/openmrs")
    rest_path: str = "/ws/rest/v1"
    fhir_path: str = "/ws/fhir2/R4"
    encounter_representation: str = DEFAULT_ENCOUNTER_REPRESENTATION
    timeout_seconds: float = Field(default=30.0, gt=0)


class ScoringConfig(BaseModel):
    endpoint_url: str = DEFAULT_SCORING_ENDPOINT
    model_id: str = "hts_xgb_1211_jan_2023"
    facility_id: str = ""
    debug: bool = True
    timeout_seconds: float = Field(default=30.0, gt=0)
    thresholds: RiskThresholds = RiskThresholds()


class UnifiedConfig(BaseSettings):
    """Unified configuration system supporting both YAML and environment variables."""

    env: Literal["local", "dev", "staging", "prod"] = "local"
    app_name: str = "HTS Risk Platform"
    debug: bool = False
    log_level: str = "INFO"

    openmrs: OpenMRSConfig = OpenMRSConfig()
    scoring: ScoringConfig = ScoringConfig()

    model_config = {
        "env_file": ".env",
        "env_prefix": "HTS_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def from_yaml(cls, path: str | Path) -> "UnifiedConfig":
        """Load configuration from YAML file.

        Values from the file are passed as init arguments, so they take
        precedence over environment variables for the keys they set.
        """
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return cls(**raw)

    @property
    def is_production_environment(self) -> bool:
        return self.env in ["staging", "prod"]


@lru_cache()
def get_config() -> UnifiedConfig:
    """Get cached unified configuration with environment-based loading."""
    env = os.getenv("ENV", os.getenv("HTS_ENV", "local")).lower()
    cfg_path = Path(os.getenv("HTS_CONFIG_PATH", f"configs/config.{env}.yaml"))

    if cfg_path.exists():
        return UnifiedConfig.from_yaml(cfg_path)
    return UnifiedConfig()
