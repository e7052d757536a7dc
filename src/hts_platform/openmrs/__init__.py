"""OpenMRS REST and FHIR client."""

from .client import FormNotFoundError, OpenMRSClient, is_uuid

__all__ = ["FormNotFoundError", "OpenMRSClient", "is_uuid"]
