"""HTTP surface for Mail Exporter."""

from .app import create_app

__all__ = ["create_app"]
