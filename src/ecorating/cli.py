"""
eco-rating CLI - Command Line Interface

Provides commands for:
- Rating a single match from a JSON-lines event file
- Rating a directory of matches in parallel
- Writing a default configuration file
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ecorating import __version__
from ecorating.analysis.models import MatchResult
from ecorating.core.config import (
    LoggingConfig,
    generate_default_config,
    load_config,
    setup_logging,
)
from ecorating.core.errors import EcoRatingError

app = typer.Typer(
    name="ecorating",
    help="Contextual-impact player ratings from round-based match events",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]eco-rating[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
) -> None:
    """eco-rating - Contextual-impact rating engine"""
    ctx.obj = {"verbose": verbose}


def _configure_logging(ctx: typer.Context, config: LoggingConfig) -> None:
    setup_logging(config)
    if ctx.obj and ctx.obj.get("verbose"):
        logging.getLogger().setLevel(logging.DEBUG)


def _display_leaderboard(result: MatchResult, show_sides: bool) -> None:
    table = Table(title=f"Match {result.match_id} ({result.total_rounds} rounds)")
    table.add_column("Player", style="cyan")
    table.add_column("K", justify="right")
    table.add_column("D", justify="right")
    table.add_column("A", justify="right")
    table.add_column("ADR", justify="right")
    table.add_column("KAST", justify="right")
    table.add_column("Swing/R", justify="right")
    table.add_column("Eco K", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("Clutch", justify="right")
    table.add_column("HLTV 1.0", justify="right")
    table.add_column("Rating", justify="right", style="bold green")
    if show_sides:
        table.add_column("T", justify="right")
        table.add_column("CT", justify="right")

    for player in result.leaderboard():
        row = [
            player.name,
            str(player.kills),
            str(player.deaths),
            str(player.assists),
            f"{player.adr:.1f}",
            f"{player.kast * 100:.0f}%",
            f"{player.swing_per_round:+.3f}",
            f"{player.eco_kill_value:.2f}",
            str(player.trade_kills),
            f"{player.clutch_wins}/{player.clutch_rounds}",
            f"{player.hltv_rating:.2f}",
            f"{player.rating:.2f}",
        ]
        if show_sides:
            row.extend(
                f"{player.side_ratings[side]:.2f}" if side in player.side_ratings else "-"
                for side in ("T", "CT")
            )
        table.add_row(*row)

    console.print(table)


@app.command()
def rate(
    ctx: typer.Context,
    events_path: Path = typer.Argument(
        ...,
        help="JSON-lines event file of one match",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .toml or .json)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the full result to this file (.json or .csv)"
    ),
    match_id: Optional[str] = typer.Option(
        None, "--match-id", help="Match identifier (defaults to the file name)"
    ),
    sides: bool = typer.Option(False, "--sides", help="Show per-side ratings"),
) -> None:
    """
    Rate one match and display the leaderboard.
    """
    from ecorating.state_machine import rate_file

    config = load_config(config_file)
    _configure_logging(ctx, config.logging)

    try:
        result = rate_file(events_path, config=config, match_id=match_id)
    except EcoRatingError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    _display_leaderboard(result, show_sides=sides)

    if output:
        if output.suffix.lower() == ".csv":
            result.to_dataframe().to_csv(output, index=False)
        else:
            with open(output, "w") as f:
                json.dump(result.to_dict(), f, indent=2)
        console.print(f"\n[green]Results written to:[/green] {output}")


@app.command()
def batch(
    ctx: typer.Context,
    directory: Path = typer.Argument(
        ...,
        help="Directory of JSON-lines event files, one per match",
        exists=True,
        file_okay=False,
        resolve_path=True,
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml, .toml or .json)"
    ),
    workers: int = typer.Option(0, "--workers", "-w", help="Worker count (0 = automatic)"),
    threads: bool = typer.Option(False, "--threads", help="Use threads instead of processes"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the batch summary to this JSON file"
    ),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="Scan subdirectories"),
) -> None:
    """
    Rate every match in a directory in parallel.

    A match that fails is reported and excluded; the others are unaffected.
    """
    from ecorating.infra.parallel import DEFAULT_WORKERS, ParallelMatchRater

    config = load_config(config_file)
    _configure_logging(ctx, config.logging)

    rater = ParallelMatchRater(
        workers=workers or DEFAULT_WORKERS,
        use_processes=not threads,
        config=config,
    )
    result = rater.rate_directory(directory, recursive=recursive)

    table = Table(title=f"Batch: {result.successful}/{result.total_matches} matches rated")
    table.add_column("Match", style="cyan")
    table.add_column("Status")
    table.add_column("Rounds", justify="right")
    table.add_column("Time (s)", justify="right")
    table.add_column("Error", style="red")

    for outcome in sorted(result.outcomes, key=lambda o: o.events_path):
        rounds = str(outcome.result["total_rounds"]) if outcome.result else "-"
        status = "[green]ok[/green]" if outcome.success else "[red]failed[/red]"
        table.add_row(
            outcome.match_id,
            status,
            rounds,
            f"{outcome.duration_seconds:.2f}",
            outcome.error_message or "",
        )
    console.print(table)

    if output:
        with open(output, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        console.print(f"\n[green]Batch summary written to:[/green] {output}")

    if result.failed:
        raise typer.Exit(1)


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(Path("ecorating.yaml"), help="Where to write the config (.yaml or .json)"),
) -> None:
    """Write the default configuration to a file."""
    try:
        generate_default_config(path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    console.print(f"[green]Default configuration written to:[/green] {path}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
