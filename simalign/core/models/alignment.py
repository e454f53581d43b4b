"""Alignment result models."""

from pydantic import BaseModel, Field


class AlignmentTrial(BaseModel):
    """One evaluation of an alignment objective."""

    adjustment: float
    error: float


class AlignmentResult(BaseModel):
    """Outcome of a root search over an alignment objective."""

    adjustment: float = Field(description="Adjustment the search settled on")
    error: float = Field(description="Target minus simulated share at adjustment")
    target: float | None = None
    converged: bool
    iterations: int = 0
    message: str = ""
    trials: list[AlignmentTrial] = Field(default_factory=list)

    @property
    def evaluations(self) -> int:
        return len(self.trials)
