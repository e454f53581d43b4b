"""CLI commands for simalign."""

from . import (
    align,
    evaluate,
    config_cmd,
)

__all__ = [
    "align",
    "evaluate",
    "config_cmd",
]
