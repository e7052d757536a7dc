"""HTS risk API module."""

from .main import app

__all__ = ["app"]
