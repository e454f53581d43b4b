"""Per-individual partnership behaviour and union matching."""

from .behaviour import (
    BehaviourConfig,
    DissolutionCoefficients,
    FormationCoefficients,
    PartnershipBehaviour,
)
from .matching import UnionMatcher

__all__ = [
    "BehaviourConfig",
    "DissolutionCoefficients",
    "FormationCoefficients",
    "PartnershipBehaviour",
    "UnionMatcher",
]
