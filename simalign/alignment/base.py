"""Objective-function contract shared by alignment evaluators."""

from abc import ABC, abstractmethod


class Evaluation(ABC):
    """A one-dimensional objective whose root a search routine looks for.

    evaluate(x) returns the signed gap between a target and what the
    simulation produces under x. Instances are callable so they can be
    handed straight to a root finder.
    """

    @abstractmethod
    def evaluate(self, x: float) -> float:
        """Return the target error under trial value x."""

    def __call__(self, x: float) -> float:
        return self.evaluate(x)
