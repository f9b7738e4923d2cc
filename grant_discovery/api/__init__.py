"""HTTP surface for scheduled and manual discovery runs."""

from .app import create_app

__all__ = ["create_app"]
