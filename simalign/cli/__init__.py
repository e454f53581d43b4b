"""Command-line interface for simalign."""

from .app import app

__all__ = ["app"]
