"""Utility helpers."""

from .resource_governor import ResourceGovernor

__all__ = ["ResourceGovernor"]
