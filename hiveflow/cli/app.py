"""Typer CLI for hiveflow."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from hiveflow.errors import ConfigError

console = Console()
app = typer.Typer(
    name="hiveflow",
    help="Plan a project with agent personas, then build it with a parallel swarm.",
    add_completion=False,
    no_args_is_help=True,
)
swarm_app = typer.Typer(help="Run the developer swarm over a backlog.", no_args_is_help=True)
app.add_typer(swarm_app, name="swarm")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    from dotenv import load_dotenv
    from rich.logging import RichHandler

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load(cwd: str):  # type: ignore[no-untyped-def]
    from hiveflow.config import load_config

    try:
        return load_config(cwd)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


def _apply_overrides(cfg, section: str, overrides: dict[str, object]) -> None:  # type: ignore[no-untyped-def]
    """Replace one config section with command-line values, re-running its validation."""
    if not overrides:
        return
    try:
        setattr(cfg, section, replace(getattr(cfg, section), **overrides))
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def plan(
    idea: str = typer.Argument(..., help="Free-text description of what to build"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    ux: bool = typer.Option(False, "--ux", help="Include a UX specification phase"),
    brownfield: bool = typer.Option(False, "--brownfield", help="Plan against an existing codebase"),
    max_validation_rounds: int | None = typer.Option(
        None, "--max-validation-rounds", help="Cap on validate→requirements loops (default from config)"
    ),
    save_backlog: str | None = typer.Option(
        None, "--save-backlog", help="Write the sharded backlog to this YAML file"
    ),
    restarts: int = typer.Option(0, "--restarts", min=0, help="Extra full planning passes after sharding"),
) -> None:
    """Turn an idea into validated planning documents and a story backlog."""
    from hiveflow.cli.runners import run_plan

    cfg = _load(str(Path(cwd).resolve()))
    overrides: dict[str, object] = {}
    if ux:
        overrides["include_ux"] = True
    if brownfield:
        overrides["project_type"] = "brownfield"
    if max_validation_rounds is not None:
        overrides["max_validation_rounds"] = max_validation_rounds
    _apply_overrides(cfg, "planning", overrides)

    exit_code = asyncio.run(run_plan(idea, cfg, save_backlog, restarts))
    raise typer.Exit(code=exit_code)


@swarm_app.command("start")
def swarm_start(
    backlog: str = typer.Argument(..., help="Backlog file (YAML or JSON)"),
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Maximum parallel workers"),
    max_cycles: int | None = typer.Option(None, "--max-cycles", help="Maximum integration cycles"),
) -> None:
    """Draft, implement, review and integrate every story in BACKLOG."""
    from hiveflow.cli.runners import run_swarm

    resolved_cwd = str(Path(cwd).resolve())
    cfg = _load(resolved_cwd)
    overrides: dict[str, object] = {}
    if workers is not None:
        overrides["max_workers"] = workers
    if max_cycles is not None:
        overrides["max_cycles"] = max_cycles
    _apply_overrides(cfg, "swarm", overrides)

    exit_code = asyncio.run(run_swarm(backlog, resolved_cwd, cfg))
    raise typer.Exit(code=exit_code)


@swarm_app.command("status")
def swarm_status(
    cwd: str = typer.Option(".", "--cwd", "-C", help="Project directory"),
) -> None:
    """Show counts from the last swarm run."""
    from hiveflow.checkpoint import load_swarm_snapshot

    try:
        snapshot = load_swarm_snapshot(str(Path(cwd).resolve()))
    except FileNotFoundError:
        console.print(
            "[dim]No swarm snapshot found.[/dim] Run [bold cyan]hiveflow swarm start[/bold cyan] first."
        )
        raise typer.Exit(code=1) from None

    counts = snapshot["counts"]
    table = Table(title="[bold cyan]Swarm Status[/bold cyan]", border_style="cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key in ("phase", "cycle", "backlog", "active", "blocked", "completed", "deferred", "abandoned", "issues"):
        table.add_row(key, str(counts.get(key, "-")))
    for status, n in sorted(counts.get("workers", {}).items()):
        table.add_row(f"workers {status}", str(n))
    for status, n in sorted(counts.get("change_sets", {}).items()):
        table.add_row(f"change sets {status}", str(n))
    console.print(table)

    for issue in snapshot.get("issues", []):
        console.print(f"[yellow]• {issue[:200]}[/yellow]")
    console.print(f"[dim]Saved {snapshot.get('saved_at', '?')}[/dim]")
