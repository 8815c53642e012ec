"""Async runner functions for CLI commands (no Typer coupling)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hiveflow.errors import HiveflowError
from hiveflow.llm.generator import create_generator

if TYPE_CHECKING:
    from hiveflow.config import HiveConfig
    from hiveflow.planning.types import PlanningPhase, PlanningState
    from hiveflow.swarm.types import SwarmPhase, SwarmState

console = Console()
logger = logging.getLogger(__name__)

_STATUS_COLORS = {"achieved": "green", "partial": "yellow", "failed": "red"}


def _render_planning_phase(phase: PlanningPhase, state: PlanningState) -> None:
    """Render one finished planning phase."""
    artifact = state["artifacts"].get(phase.value)
    if artifact is not None:
        console.print(
            f"[bold blue]▶ {phase.value.upper()}[/bold blue] "
            f"[dim]v{artifact.version} by {artifact.author}, {len(artifact.content):,} chars[/dim]"
        )
    elif phase.value == "validate":
        if state["validation_issues"]:
            console.print(f"[yellow]… VALIDATE round {state['validation_rounds']}: issues found[/yellow]")
        else:
            console.print(f"[green]✓ VALIDATE round {state['validation_rounds']}: validated[/green]")
    elif phase.value == "shard":
        console.print(
            f"[bold blue]▶ SHARD[/bold blue] [dim]{len(state['epics'])} epic(s), "
            f"{len(state['items'])} stories[/dim]"
        )


def _render_swarm_phase(phase: SwarmPhase, state: SwarmState) -> None:
    """Render one finished swarm phase."""
    name = phase.value
    if name == "draft":
        console.print(
            f"  [cyan]draft[/cyan] backlog={len(state['backlog'])} active={len(state['active'])} "
            f"blocked={len(state['blocked'])}"
        )
    elif name == "assign":
        busy = [f"{w.id}→{w.assigned_item}" for w in state["workers"] if w.status == "working"]
        console.print(f"  [cyan]assign[/cyan] {', '.join(busy) or 'no idle work'}")
    elif name == "execute":
        pending = sum(1 for c in state["change_sets"] if c.status == "pending")
        console.print(f"  [cyan]execute[/cyan] {pending} change set(s) pending review")
    elif name == "review":
        latest = [r for r in state["review_results"] if r.round == state["review_round"]]
        approved = sum(1 for r in latest if r.approved)
        console.print(f"  [cyan]review[/cyan] round {state['review_round']}: {approved}/{len(latest)} approved")
    elif name == "integrate":
        console.print(
            f"\n[bold blue]▶ Cycle {state['cycle']} integrated[/bold blue] "
            f"[dim]completed={len(state['completed'])} blocked={len(state['blocked'])}[/dim]"
        )


@contextlib.contextmanager
def _cancel_on_interrupt(cancel: Callable[[], None]) -> Iterator[None]:
    """Route Ctrl-C to the pipeline's cancellation signal while the block runs."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl-C will interrupt immediately")
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


async def run_plan(idea: str, cfg: HiveConfig, save_backlog: str | None, restarts: int = 0) -> int:
    """Run the planning pipeline and print the resulting backlog."""
    from hiveflow.backlog import dump_backlog
    from hiveflow.planning.pipeline import PlanningPipeline

    pipeline = PlanningPipeline(
        generator=create_generator(cfg.planning_model),
        config=cfg.planning,
        on_phase=_render_planning_phase,
    )
    console.print(f"\n[bold blue]Planning:[/bold blue] {idea[:80]}")

    try:
        with _cancel_on_interrupt(pipeline.cancel):
            result = await pipeline.run(idea, restarts=restarts)
    except HiveflowError as e:
        console.print(f"\n[red]Planning failed: {e}[/red]")
        return 1

    if result.items:
        table = Table(title="[bold cyan]Backlog[/bold cyan]", border_style="cyan")
        table.add_column("ID", style="dim")
        table.add_column("Epic", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Depends on")
        for item in result.items:
            table.add_row(item.id, item.epic_id or "-", item.title, ", ".join(item.dependencies) or "-")
        console.print(table)

    if result.issues:
        issues = "\n".join(f"• {issue[:300]}" for issue in result.issues)
        console.print(
            Panel(issues, border_style="yellow", title="[bold]Needs your input[/bold]")
        )

    if save_backlog and result.items:
        path = dump_backlog(result.items, save_backlog)
        console.print(f"[green]✓ Backlog saved to {path}[/green]")

    console.print(f"[dim]Planning finished in {result.duration_seconds:.1f}s[/dim]")
    return 0


async def run_swarm(backlog_path: str, cwd: str, cfg: HiveConfig) -> int:
    """Run the swarm over a backlog file and save a status snapshot."""
    from hiveflow.backlog import load_backlog
    from hiveflow.checkpoint import save_swarm_snapshot
    from hiveflow.swarm.orchestrator import SwarmOrchestrator

    try:
        backlog = load_backlog(backlog_path)
    except HiveflowError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    orchestrator = SwarmOrchestrator(
        backlog=backlog,
        generator=create_generator(cfg.coding_model),
        config=cfg.swarm,
        on_phase=_render_swarm_phase,
    )
    console.print(
        f"\n[bold blue]Swarm:[/bold blue] {len(backlog)} item(s), {cfg.swarm.max_workers} worker(s)"
    )

    try:
        with _cancel_on_interrupt(orchestrator.cancel):
            result = await orchestrator.run()
    except HiveflowError as e:
        console.print(f"\n[red]Swarm failed: {e}[/red]")
        return 1

    path = save_swarm_snapshot(result.state, cwd)
    color = _STATUS_COLORS.get(result.status, "red")
    completed = ", ".join(item.id for item in result.completed) or "none"
    body = (
        f"[bold {color}]{result.status.upper()}[/bold {color}]\n\n"
        f"Completed: {completed}\n"
        f"Cycles: [bold]{result.state['cycle']}[/bold]  ·  "
        f"Time: [bold]{result.duration_seconds:.1f}s[/bold]"
    )
    if result.issues:
        body += "\n\n[yellow]Issues:[/yellow]\n" + "\n".join(f"• {i[:200]}" for i in result.issues)
    console.print(Panel(body, border_style=color, title="[bold]Swarm Complete[/bold]"))
    console.print(f"[dim]Snapshot: {Path(path)}[/dim]")
    return 0
