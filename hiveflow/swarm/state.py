"""Construction and read-only queries over SwarmState."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from hiveflow.config import SwarmConfig
from hiveflow.models import WorkItem, find_dangling_dependencies, find_dependency_cycles
from hiveflow.swarm.pool import make_roster
from hiveflow.swarm.queue import DependencyQueue
from hiveflow.swarm.types import SwarmPhase, SwarmState

logger = logging.getLogger(__name__)


def make_initial_swarm_state(backlog: list[WorkItem], config: SwarmConfig | None = None) -> SwarmState:
    """Build the starting state for a swarm run.

    Duplicate ids are dropped (first occurrence wins); dangling dependency
    references and dependency cycles are reported as issues up front.
    """
    cfg = config or SwarmConfig()
    issues: list[str] = []
    queue = DependencyQueue()
    for item in backlog:
        before = queue
        queue = queue.enqueue(item)
        if queue is before:
            issues.append(f"Duplicate work item id {item.id!r} ignored")

    for item_id, missing in find_dangling_dependencies(list(queue.backlog)).items():
        issues.append(f"{item_id} depends on unknown item(s) {', '.join(missing)}")

    for item_id in find_dependency_cycles(list(queue.backlog)):
        issues.append(f"{item_id} is part of a dependency cycle and can never start")

    for issue in issues:
        logger.warning(issue)

    return SwarmState(
        backlog=list(queue.backlog),
        active=[],
        completed=[],
        blocked=[],
        deferred=[],
        abandoned=[],
        workers=make_roster(cfg.max_workers),
        max_workers=cfg.max_workers,
        change_sets=[],
        review_results=[],
        issues=issues,
        phase=SwarmPhase.DRAFT,
        cycle=0,
        max_cycles=cfg.max_cycles,
        review_round=0,
        rework_rounds=0,
        max_rework_rounds=cfg.max_rework_rounds,
        max_draft_attempts=cfg.max_draft_attempts,
    )


def completed_ids(state: SwarmState) -> set[str]:
    return {item.id for item in state["completed"]}


def blocked_ids(state: SwarmState) -> list[str]:
    return [item.id for item in state["blocked"]]


def known_item_ids(state: SwarmState) -> set[str]:
    """Ids of work items that can still complete or already have; abandoned ones are left out."""
    ids: set[str] = set()
    for key in ("backlog", "active", "completed", "blocked", "deferred"):
        ids.update(item.id for item in state[key])  # type: ignore[literal-required]
    return ids


def summarize_swarm(state: SwarmState) -> dict[str, Any]:
    """Counts for status display."""
    return {
        "phase": SwarmPhase(state["phase"]).value,
        "cycle": state["cycle"],
        "backlog": len(state["backlog"]),
        "active": len(state["active"]),
        "blocked": len(state["blocked"]),
        "completed": len(state["completed"]),
        "deferred": len(state["deferred"]),
        "abandoned": len(state["abandoned"]),
        "workers": dict(Counter(w.status for w in state["workers"])),
        "change_sets": dict(Counter(c.status for c in state["change_sets"])),
        "reviews": len(state["review_results"]),
        "issues": len(state["issues"]),
    }


def pending_dependencies(state: SwarmState) -> dict[str, tuple[str, ...]]:
    """Dependency map over every item that has not completed yet."""
    return {
        item.id: item.dependencies
        for key in ("backlog", "active", "blocked", "deferred")
        for item in state[key]  # type: ignore[literal-required]
    }
