"""Data models for simalign."""

from .population import Dcpst, Gender, Person, Population
from .targets import TargetShare, TargetShareTable
from .alignment import AlignmentResult, AlignmentTrial

__all__ = [
    # Population
    "Dcpst",
    "Gender",
    "Person",
    "Population",
    # Targets
    "TargetShare",
    "TargetShareTable",
    # Alignment
    "AlignmentResult",
    "AlignmentTrial",
]
