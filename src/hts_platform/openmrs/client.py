"""Thin async wrappers over the OpenMRS REST and FHIR endpoints used by the HTS form."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import httpx

from hts_platform.config import OpenMRSConfig, get_config
from hts_platform.logging_utils import get_logger

logger = get_logger("openmrs_client")

UUID_PATTERN = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")

JSON_SCHEMA_RESOURCE = "JSON schema"


class FormNotFoundError(LookupError):
    """No form matched a by-name lookup."""


def is_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(UUID_PATTERN.match(value))


class OpenMRSClient:
    """Async OpenMRS client.

    Every method issues exactly one request. HTTP error statuses raise
    ``httpx.HTTPStatusError``.
    """

    def __init__(self, config: Optional[OpenMRSConfig] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config if config is not None else get_config().openmrs
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url.rstrip("/"),
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "OpenMRSClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _rest(self, path: str) -> str:
        return f"{self.config.rest_path}/{path.lstrip('/')}"

    def _fhir(self, path: str) -> str:
        return f"{self.config.fhir_path}/{path.lstrip('/')}"

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def save_encounter(self, payload: Dict[str, Any], encounter_uuid: Optional[str] = None) -> Dict[str, Any]:
        """Create an encounter, or update ``encounter_uuid`` when given."""
        url = self._rest(f"encounter/{encounter_uuid}") if encounter_uuid else self._rest("encounter")
        response = await self.client.post(url, params={"v": "full"}, json=payload)
        response.raise_for_status()
        logger.info("Encounter saved", updated=bool(encounter_uuid), status_code=response.status_code)
        return response.json()

    async def get_concept(self, concept_uuid: str, v: str = "full") -> Dict[str, Any]:
        return await self._get_json(self._rest(f"concept/{concept_uuid}"), params={"v": v})

    async def get_locations_by_tag(self, tag: str) -> List[Dict[str, str]]:
        data = await self._get_json(self._rest("location"), params={"tag": tag, "v": "custom:(uuid,display)"})
        return data["results"]

    async def get_previous_encounter(self, patient_uuid: str, encounter_type: str) -> Optional[Dict[str, Any]]:
        """Most recent encounter of ``encounter_type`` for the patient, or None."""
        data = await self._get_json(
            self._rest("encounter"),
            params={
                "encounterType": encounter_type,
                "patient": patient_uuid,
                "limit": 1,
                "v": self.config.encounter_representation,
            },
        )
        results = data.get("results") or []
        return results[0] if results else None

    async def fetch_concept_name_by_uuid(self, concept_uuid: str) -> Optional[str]:
        data = await self._get_json(self._rest(f"concept/{concept_uuid}/name"), params={"limit": 1})
        results = data.get("results") or []
        if results:
            return results[-1].get("display")
        return None

    async def get_latest_obs(
        self,
        patient_uuid: str,
        concept_uuid: str,
        encounter_type_uuid: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Latest FHIR Observation for a patient and concept, or None."""
        params: Dict[str, Any] = {"patient": patient_uuid, "code": concept_uuid}
        if encounter_type_uuid:
            params["encounter.type"] = encounter_type_uuid
        params["_sort"] = "-_lastUpdated"
        params["_count"] = 1

        data = await self._get_json(self._fhir("Observation"), params=params)
        entries = data.get("entry") or []
        return entries[0]["resource"] if entries else None

    async def fetch_form(self, name_or_uuid: Optional[str]) -> Optional[Dict[str, Any]]:
        """Fetch a form by UUID or by name.

        Returns None for an empty argument. A name lookup that matches no
        form raises ``FormNotFoundError``.
        """
        if not name_or_uuid:
            return None

        if is_uuid(name_or_uuid):
            return await self._get_json(self._rest(f"form/{name_or_uuid}"), params={"v": "full"})

        data = await self._get_json(self._rest("form"), params={"q": name_or_uuid, "v": "full"})
        results = data.get("results") or []
        if not results:
            raise FormNotFoundError(f"Form with {name_or_uuid} was not found")
        return results[0]

    async def fetch_clob_data(self, form: Optional[Dict[str, Any]]) -> Optional[Any]:
        """Fetch the JSON schema clob attached to a form, or None."""
        if not form:
            return None

        resource = next(
            (r for r in form.get("resources") or [] if r.get("name") == JSON_SCHEMA_RESOURCE),
            None,
        )
        if resource is None:
            return None

        return await self._get_json(self._rest(f"clobdata/{resource['valueReference']}"))
