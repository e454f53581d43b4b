"""Align command: calibrate the partnership intercept shift for one period."""

import logging
import time
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from ...alignment import align_partnerships
from ...config import get_config
from ...core.models import Population, TargetShareTable
from ...population import BehaviourConfig, PartnershipBehaviour
from ...simulation import PopulationModel
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, format_elapsed


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging for alignment runs.

    In --json mode records go to stderr so stdout holds only the JSON document.
    """
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=Console(stderr=True) if get_json_mode() else console,
                show_path=False,
                markup=True,
            )
        ],
        force=True,
    )

    for name in ["simalign.alignment", "simalign.simulation"]:
        logging.getLogger(name).setLevel(level)


def load_inputs(
    out: Output,
    population_path: Path,
    targets_path: Path | None,
    behaviour_path: Path | None,
    min_age: int | None,
) -> tuple[PopulationModel, PartnershipBehaviour, TargetShareTable] | None:
    """Load population, targets and behaviour coefficients.

    Reports problems through `out` and returns None on failure.
    """
    targets_path = targets_path or get_config().targets_path_resolved

    for path in (population_path, targets_path, behaviour_path):
        if path is not None and not path.exists():
            out.error(f"File not found: {path}", exit_code=ExitCode.FILE_NOT_FOUND)
            return None

    try:
        population = Population.from_yaml(population_path)
        targets = TargetShareTable.from_yaml(targets_path)
        behaviour_config = (
            BehaviourConfig.from_yaml(behaviour_path) if behaviour_path else None
        )
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        out.error(f"Invalid input: {e}")
        return None

    model = PopulationModel(population, min_age=min_age)
    behaviour = PartnershipBehaviour(population.year, behaviour_config)
    return model, behaviour, targets


@app.command("align")
def align_command(
    population: Path = typer.Argument(..., help="Population YAML file"),
    targets: Path | None = typer.Option(
        None, "--targets", "-t", help="Target share YAML (defaults to config)"
    ),
    behaviour: Path | None = typer.Option(
        None, "--behaviour", "-b", help="Behaviour coefficient YAML"
    ),
    initial: float = typer.Option(
        0.0, "--initial", help="Intercept shift in force before alignment"
    ),
    lower: float | None = typer.Option(None, "--lower", help="Bracket lower end"),
    upper: float | None = typer.Option(None, "--upper", help="Bracket upper end"),
    min_age: int | None = typer.Option(
        None, "--min-age", help="Minimum cohabitation age"
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", min=1, help="Threads for per-person passes"
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Commit partnerships at the aligned shift and save the population here",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show search progress"),
    debug: bool = typer.Option(False, "--debug", help="Log every trial"),
):
    """
    Calibrate the union-formation intercept shift so the simulated share of
    partnered persons matches the target for the population's year.

    EXIT CODES:
        0 = Success (converged)
        1 = Validation error or search did not converge
        3 = File not found
        4 = Alignment error

    EXAMPLES:
        simalign align population.yaml -t targets.yaml
        simalign align population.yaml --lower -2 --upper 2 -o aligned.yaml
    """
    setup_logging(verbose, debug)
    out = Output(console=console, json_mode=get_json_mode())

    loaded = load_inputs(out, population, targets, behaviour, min_age)
    if loaded is None:
        raise typer.Exit(out.finish())
    model, partnership_behaviour, target_table = loaded

    start = time.time()
    try:
        result, evaluator = align_partnerships(
            model,
            model.persons,
            partnership_behaviour,
            target_table,
            initial_adjustment=initial,
            lower=lower,
            upper=upper,
            min_age=min_age,
            max_workers=workers,
        )
    except KeyError as e:
        out.error(f"Missing target: {e}")
        raise typer.Exit(out.finish())
    except ValueError as e:
        out.error(f"Alignment failed: {e}", exit_code=ExitCode.ALIGNMENT_ERROR)
        raise typer.Exit(out.finish())
    elapsed = time.time() - start

    out.table(
        "Trials",
        ["Adjustment", "Error"],
        [[f"{t.adjustment:.6f}", f"{t.error:+.4f}"] for t in result.trials],
    )
    out.success(
        f"Aligned {model.year}: shift={result.adjustment:.6f} "
        f"error={result.error:+.4f} target={result.target:.4f} "
        f"({result.evaluations} evaluations, {format_elapsed(elapsed)})",
        year=model.year,
        adjustment=result.adjustment,
        error=result.error,
        target=result.target,
        converged=result.converged,
        evaluations=result.evaluations,
    )
    if not result.converged:
        out.error(
            f"Search did not converge: {result.message}",
            suggestion="Widen the bracket with --lower/--upper",
        )

    if output is not None:
        formed = model.commit_partnerships()
        model.population.to_yaml(output)
        out.success(
            f"Committed {formed} unions at shift {evaluator.partnership_adjustment:.6f}"
            f" → {output}",
            unions_formed=formed,
            output=str(output),
        )

    raise typer.Exit(out.finish())
