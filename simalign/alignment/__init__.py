"""Alignment of simulated aggregates to target shares.

Usage:
    from simalign.alignment import PartnershipAlignment, search_root

    evaluator = PartnershipAlignment(
        model.persons, 0.0, model=model, behaviour=behaviour, targets=targets
    )
    result = search_root(evaluator, -3.0, 3.0)
"""

from .base import Evaluation
from .partnership import MatchingContext, PartnershipAlignment, PartnershipModels
from .search import align_partnerships, search_root

__all__ = [
    "Evaluation",
    "MatchingContext",
    "PartnershipAlignment",
    "PartnershipModels",
    "align_partnerships",
    "search_root",
]
