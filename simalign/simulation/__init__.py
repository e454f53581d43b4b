"""Simulation context for alignment.

Usage:
    from simalign.simulation import PopulationModel

    model = PopulationModel(Population.from_yaml("population.yaml"))
    model.clear_persons_to_match()
    model.union_matching(test=True)
    model.union_matching_no_region(test=True)
"""

from .model import PopulationModel

__all__ = ["PopulationModel"]
