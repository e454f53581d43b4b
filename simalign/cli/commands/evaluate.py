"""Evaluate command: run one partnership alignment trial."""

from pathlib import Path

import typer

from ...alignment import PartnershipAlignment
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output
from .align import load_inputs, setup_logging


@app.command("evaluate")
def evaluate_command(
    population: Path = typer.Argument(..., help="Population YAML file"),
    adjustment: float = typer.Option(
        ..., "--adjustment", "-a", help="Trial intercept shift"
    ),
    targets: Path | None = typer.Option(
        None, "--targets", "-t", help="Target share YAML (defaults to config)"
    ),
    behaviour: Path | None = typer.Option(
        None, "--behaviour", "-b", help="Behaviour coefficient YAML"
    ),
    min_age: int | None = typer.Option(
        None, "--min-age", help="Minimum cohabitation age"
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", min=1, help="Threads for per-person passes"
    ),
    debug: bool = typer.Option(False, "--debug", help="Log the trial"),
):
    """
    Evaluate the partnership target error at one intercept shift.

    Prints target minus simulated partnered share; positive means the
    shift should rise.

    EXAMPLES:
        simalign evaluate population.yaml -a 0.25 -t targets.yaml
    """
    setup_logging(debug=debug)
    out = Output(console=console, json_mode=get_json_mode())

    loaded = load_inputs(out, population, targets, behaviour, min_age)
    if loaded is None:
        raise typer.Exit(out.finish())
    model, partnership_behaviour, target_table = loaded

    try:
        evaluator = PartnershipAlignment(
            model.persons,
            0.0,
            model=model,
            behaviour=partnership_behaviour,
            targets=target_table,
            min_age=min_age,
            max_workers=workers,
        )
        error = evaluator.evaluate(adjustment)
    except KeyError as e:
        out.error(f"Missing target: {e}")
        raise typer.Exit(out.finish())
    except ValueError as e:
        out.error(f"Evaluation failed: {e}", exit_code=ExitCode.ALIGNMENT_ERROR)
        raise typer.Exit(out.finish())

    target = evaluator.target_aggregate_share
    out.success(
        f"Year {model.year}: shift={adjustment:.6f} share={target - error:.4f} "
        f"target={target:.4f} error={error:+.4f}",
        year=model.year,
        adjustment=adjustment,
        share=target - error,
        target=target,
        error=error,
    )
    raise typer.Exit(out.finish())
