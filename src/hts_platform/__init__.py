"""HTS risk screening: OpenMRS client, feature encoding and remote case-finding scores."""

__version__ = "0.1.0"
