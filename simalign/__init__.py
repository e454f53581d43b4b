"""simalign: target alignment for agent-based population simulation.

Calibrates behavioural-model intercepts so that simulated aggregates
match externally supplied targets for a simulation period.

Usage:
    from simalign import PartnershipAlignment, align_partnerships
"""

__version__ = "0.1.0"

from .alignment import PartnershipAlignment, align_partnerships, search_root

__all__ = [
    "__version__",
    "PartnershipAlignment",
    "align_partnerships",
    "search_root",
]
