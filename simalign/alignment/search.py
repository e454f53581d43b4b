"""Root search over alignment objectives.

search_root() brackets the objective, then hands it to scipy's brentq.
Alignment objectives are step functions (shares move in whole persons),
so the search stops at the jump nearest the target rather than at an
exact zero; the error reported is the one observed at that point.

After the search the objective is evaluated once more at the returned
adjustment, so the population's transient state and the evaluator's
stored adjustment correspond to the reported result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from scipy import optimize

from ..config import get_config
from ..core.models.alignment import AlignmentResult, AlignmentTrial
from ..core.models.population import Person
from ..core.models.targets import TargetShareTable
from .base import Evaluation
from .partnership import MatchingContext, PartnershipAlignment, PartnershipModels

logger = logging.getLogger(__name__)


def search_root(
    evaluation: Evaluation,
    lower: float,
    upper: float,
    *,
    xtol: float | None = None,
    error_tolerance: float | None = None,
    maxiter: int | None = None,
) -> AlignmentResult:
    """Find the trial value at which evaluation changes sign.

    Args:
        evaluation: Objective to search.
        lower: Lower end of the bracket.
        upper: Upper end of the bracket.
        xtol: Absolute tolerance on the trial value.
        error_tolerance: Accept a bracket end whose |error| is at most this.
        maxiter: Maximum brentq iterations.

    Returns:
        AlignmentResult. converged is False when the bracket has no sign
        change or brentq ran out of iterations.

    Raises:
        ValueError: If lower is not below upper.
    """
    settings = get_config().alignment
    xtol = settings.xtol if xtol is None else xtol
    error_tolerance = (
        settings.error_tolerance if error_tolerance is None else error_tolerance
    )
    maxiter = settings.max_iterations if maxiter is None else maxiter

    if not lower < upper:
        raise ValueError(f"Invalid bracket: lower={lower} must be below upper={upper}")

    trials: list[AlignmentTrial] = []

    def objective(x: float) -> float:
        error = evaluation(x)
        trials.append(AlignmentTrial(adjustment=x, error=error))
        return error

    f_lower = objective(lower)
    f_upper = objective(upper)

    for x, error in ((lower, f_lower), (upper, f_upper)):
        if abs(error) <= error_tolerance:
            return _finish(
                evaluation,
                x,
                trials,
                converged=True,
                iterations=0,
                message="bracket end within error tolerance",
            )

    if f_lower * f_upper > 0:
        best = lower if abs(f_lower) <= abs(f_upper) else upper
        logger.warning(
            "No sign change in bracket [%s, %s] (errors %.4f, %.4f); using %s",
            lower,
            upper,
            f_lower,
            f_upper,
            best,
        )
        return _finish(
            evaluation,
            best,
            trials,
            converged=False,
            iterations=0,
            message="no sign change in bracket",
        )

    sol = optimize.root_scalar(
        objective,
        method="brentq",
        bracket=(lower, upper),
        xtol=xtol,
        maxiter=maxiter,
    )
    return _finish(
        evaluation,
        float(sol.root),
        trials,
        converged=bool(sol.converged),
        iterations=sol.iterations,
        message=sol.flag,
    )


def _finish(
    evaluation: Evaluation,
    x: float,
    trials: list[AlignmentTrial],
    *,
    converged: bool,
    iterations: int,
    message: str,
) -> AlignmentResult:
    error = evaluation(x)
    trials.append(AlignmentTrial(adjustment=x, error=error))
    logger.info(
        "Alignment search finished at %.6f (error=%.4f, converged=%s, %d evaluations)",
        x,
        error,
        converged,
        len(trials),
    )
    return AlignmentResult(
        adjustment=x,
        error=error,
        converged=converged,
        iterations=iterations,
        message=message,
        trials=trials,
    )


def align_partnerships(
    model: MatchingContext,
    persons: Sequence[Person],
    behaviour: PartnershipModels,
    targets: TargetShareTable,
    *,
    initial_adjustment: float = 0.0,
    lower: float | None = None,
    upper: float | None = None,
    min_age: int | None = None,
    max_workers: int | None = None,
) -> tuple[AlignmentResult, PartnershipAlignment]:
    """Calibrate the union-formation intercept shift for model.year.

    Bracket defaults come from config. Errors raised while evaluating
    propagate; there is no retry.

    Raises:
        ValueError: If min_age is given and differs from model.min_age.

    Returns:
        (result, evaluator). The evaluator holds the final adjustment.
    """
    settings = get_config().alignment
    evaluator = PartnershipAlignment(
        persons,
        initial_adjustment,
        model=model,
        behaviour=behaviour,
        targets=targets,
        min_age=min_age,
        max_workers=max_workers,
    )
    result = search_root(
        evaluator,
        settings.lower_bound if lower is None else lower,
        settings.upper_bound if upper is None else upper,
    )
    result = result.model_copy(update={"target": evaluator.target_aggregate_share})
    return result, evaluator
