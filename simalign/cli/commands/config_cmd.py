"""Config command for viewing and managing simalign configuration."""

import typer

from ..app import app, console
from ...config import (
    FLOAT_FIELDS,
    INT_FIELDS,
    get_config,
    reset_config,
    CONFIG_FILE,
)


VALID_KEYS = {
    "alignment.min_age_cohabitation",
    "alignment.lower_bound",
    "alignment.upper_bound",
    "alignment.xtol",
    "alignment.error_tolerance",
    "alignment.max_iterations",
    "alignment.max_workers",
    "defaults.targets_path",
    "defaults.resource_mode",
}


@app.command("config")
def config_command(
    action: str = typer.Argument(
        ...,
        help="Action: show, set, reset",
    ),
    key: str | None = typer.Argument(
        None,
        help="Config key (e.g. alignment.max_workers, defaults.targets_path)",
    ),
    value: str | None = typer.Argument(
        None,
        help="Value to set",
    ),
):
    """View or modify simalign configuration.

    Examples:
        simalign config show
        simalign config set alignment.min_age_cohabitation 16
        simalign config set defaults.targets_path ./data/targets.yaml
        simalign config reset
    """
    if action == "show":
        _show_config()
    elif action == "set":
        if not key or value is None:
            console.print("[red]Usage:[/red] simalign config set <key> <value>")
            console.print()
            console.print("Available keys:")
            for k in sorted(VALID_KEYS):
                console.print(f"  {k}")
            raise typer.Exit(1)
        _set_config(key, value)
    elif action == "reset":
        _reset_config()
    else:
        console.print(f"[red]Unknown action:[/red] {action}")
        console.print("Valid actions: show, set, reset")
        raise typer.Exit(1)


def _show_config():
    """Display current resolved configuration."""
    config = get_config()

    console.print()
    console.print("[bold]simalign Configuration[/bold]")
    console.print("─" * 40)

    console.print()
    console.print("[bold cyan]Alignment[/bold cyan]")
    for name, val in config.to_dict()["alignment"].items():
        console.print(f"  {name:<22} = {val}")

    console.print()
    console.print("[bold cyan]Defaults[/bold cyan]")
    for name, val in config.to_dict()["defaults"].items():
        console.print(f"  {name:<22} = {val}")

    console.print()
    if CONFIG_FILE.exists():
        console.print(f"[dim]Config file: {CONFIG_FILE}[/dim]")
    else:
        console.print("[dim]No config file (using defaults)[/dim]")


def _set_config(key: str, value: str):
    """Set a config value and save."""
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key:[/red] {key}")
        console.print("Valid keys: " + ", ".join(sorted(VALID_KEYS)))
        raise typer.Exit(1)

    section, field_name = key.split(".", 1)

    parsed: object = value
    if field_name in INT_FIELDS:
        try:
            parsed = int(value)
        except ValueError:
            console.print(f"[red]Invalid integer:[/red] {value}")
            raise typer.Exit(1)
    elif field_name in FLOAT_FIELDS:
        try:
            parsed = float(value)
        except ValueError:
            console.print(f"[red]Invalid number:[/red] {value}")
            raise typer.Exit(1)

    config = get_config()
    setattr(getattr(config, section), field_name, parsed)
    config.save()
    reset_config()

    console.print(f"[green]✓[/green] Set {key} = {parsed}")


def _reset_config():
    """Reset config to defaults."""
    if CONFIG_FILE.exists():
        CONFIG_FILE.unlink()
        console.print("[green]✓[/green] Config reset to defaults")
    else:
        console.print("No config file to reset")
    reset_config()
