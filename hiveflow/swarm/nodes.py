"""Swarm phase bodies.

Each node reads the materialized state, returns a partial dict with the keys
it changed, and records its own phase. Only ``execute`` and ``review`` fan
out; both wait on every dispatched call before building their delta.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from langchain_core.runnables import RunnableConfig

from hiveflow.errors import GenerationError
from hiveflow.llm.generator import ContentGenerator
from hiveflow.models import ChangeSet, WorkItem, depends_on
from hiveflow.parsing import ParseFailure
from hiveflow.swarm.drafter import draft_item
from hiveflow.swarm.pool import assign, release, set_progress, worker_sort_key
from hiveflow.swarm.queue import DependencyQueue
from hiveflow.swarm.reviewer import review_change_set
from hiveflow.swarm.state import completed_ids, known_item_ids, pending_dependencies
from hiveflow.swarm.types import SwarmPhase, SwarmState
from hiveflow.swarm.worker import run_worker

logger = logging.getLogger(__name__)

# Backlog items shown to the drafter as context
_UPCOMING = 5


def _services(config: RunnableConfig) -> tuple[ContentGenerator, asyncio.Event | None]:
    cfg = config.get("configurable", {})
    return cfg["generator"], cfg.get("cancel_event")


def _defer(state: SwarmState, item: WorkItem, issues: list[str]) -> dict:
    deferred = replace(item, status="draft", draft_attempts=item.draft_attempts + 1)
    return {"deferred": state["deferred"] + [deferred], "issues": issues}


# ── Draft ─────────────────────────────────────────────────────────────────────


async def draft_node(state: SwarmState, config: RunnableConfig) -> dict:
    """Pop one backlog item, expand it into tasks, place it in active or blocked."""
    generator, cancel_event = _services(config)
    queue = DependencyQueue(backlog=tuple(state["backlog"]), blocked=tuple(state["blocked"]))
    item, queue = queue.dequeue_next()
    if item is None:
        return {"phase": SwarmPhase.DRAFT}

    delta: dict = {"phase": SwarmPhase.DRAFT, "backlog": list(queue.backlog)}
    issues = list(state["issues"])
    upcoming = list(queue.backlog[:_UPCOMING])

    try:
        result = await draft_item(generator, item, upcoming, cancel_event)
    except GenerationError as e:
        logger.warning("Drafting %s failed: %s", item.id, e)
        issues.append(f"Generation failed for {item.id} during draft: {e}")
        return {**delta, **_defer(state, item, issues)}

    if isinstance(result, ParseFailure):
        logger.warning("Draft for %s is malformed: %s", item.id, result.reason)
        issues.append(f"Malformed draft for {item.id}: {result.reason}")
        return {**delta, **_defer(state, item, issues)}

    outcome = result.value
    known = known_item_ids(state)
    pending = pending_dependencies(state)
    accepted: list[str] = []
    for dep in outcome.generated_dependencies:
        if dep not in known:
            issues.append(f"Discarded generated dependency {dep!r} of {item.id}: no such work item")
        elif depends_on(pending, dep, item.id):
            issues.append(f"Discarded generated dependency {dep!r} of {item.id}: would create a cycle")
        elif dep not in item.dependencies and dep not in accepted:
            accepted.append(dep)
    drafted = replace(outcome.item, dependencies=item.dependencies + tuple(accepted))

    queue, ready = queue.reclassify(drafted, completed_ids(state))
    delta.update(backlog=list(queue.backlog), blocked=list(queue.blocked), issues=issues)
    if ready:
        delta["active"] = state["active"] + [drafted]
        logger.info("Drafted %s (%d tasks)", drafted.id, len(drafted.tasks))
    return delta


# ── Assign ────────────────────────────────────────────────────────────────────


async def assign_node(state: SwarmState, config: RunnableConfig) -> dict:
    items, roster, pairs = assign(state["active"], state["workers"])
    if not pairs:
        return {"phase": SwarmPhase.ASSIGN}
    return {"phase": SwarmPhase.ASSIGN, "active": items, "workers": roster}


# ── Execute ───────────────────────────────────────────────────────────────────


async def execute_node(state: SwarmState, config: RunnableConfig) -> dict:
    """Run every working worker concurrently and collect change sets by worker id."""
    generator, cancel_event = _services(config)
    by_id = {item.id: item for item in state["active"]}
    working = sorted(
        (w for w in state["workers"] if w.status == "working" and w.assigned_item in by_id),
        key=lambda w: worker_sort_key(w.id),
    )
    if not working:
        return {"phase": SwarmPhase.EXECUTE}

    results = await asyncio.gather(
        *(run_worker(generator, w, by_id[w.assigned_item], cancel_event) for w in working),  # type: ignore[index]
        return_exceptions=True,
    )

    workers = list(state["workers"])
    change_sets = list(state["change_sets"])
    issues = list(state["issues"])
    for worker, result in zip(working, results):
        item_id = worker.assigned_item
        assert item_id is not None
        if isinstance(result, GenerationError | asyncio.CancelledError | ParseFailure):
            reason = result.reason if isinstance(result, ParseFailure) else str(result) or "cancelled"
            logger.warning("Worker %s failed on %s: %s", worker.id, item_id, reason)
            issues.append(f"Generation failed for {item_id} on {worker.id}: {reason}")
            workers = release(workers, worker.id)
            by_id[item_id] = replace(by_id[item_id], status="ready", assigned_worker=None)
            continue
        if isinstance(result, BaseException):
            raise result

        revision = sum(1 for c in change_sets if c.item_id == item_id) + 1
        change_sets = [
            replace(c, status="superseded") if c.item_id == item_id and c.status in ("pending", "reviewed") else c
            for c in change_sets
        ]
        change_sets.append(replace(result.value, revision=revision))
        workers = set_progress(workers, worker.id, 100)
        by_id[item_id] = replace(by_id[item_id], status="review")
        logger.info("%s produced change set r%d for %s", worker.id, revision, item_id)

    return {
        "phase": SwarmPhase.EXECUTE,
        "active": [by_id[item.id] for item in state["active"]],
        "workers": workers,
        "change_sets": change_sets,
        "issues": issues,
    }


# ── Review ────────────────────────────────────────────────────────────────────


async def review_node(state: SwarmState, config: RunnableConfig) -> dict:
    """Review every pending change set; approved ones become ``reviewed``."""
    generator, cancel_event = _services(config)
    review_round = state["review_round"] + 1
    by_id = {item.id: item for item in state["active"]}
    pending: list[ChangeSet] = sorted(
        (c for c in state["change_sets"] if c.status == "pending" and c.item_id in by_id),
        key=lambda c: c.item_id,
    )
    if not pending:
        return {"phase": SwarmPhase.REVIEW, "review_round": review_round}

    outcomes = await asyncio.gather(
        *(review_change_set(generator, c, by_id[c.item_id], review_round, cancel_event) for c in pending),
        return_exceptions=True,
    )

    approved: set[tuple[str, int]] = set()
    results = list(state["review_results"])
    issues = list(state["issues"])
    batch_failed = False
    for change_set, outcome in zip(pending, outcomes):
        if isinstance(outcome, GenerationError | asyncio.CancelledError | ParseFailure):
            reason = outcome.reason if isinstance(outcome, ParseFailure) else str(outcome) or "cancelled"
            logger.warning("Review of %s failed: %s", change_set.item_id, reason)
            issues.append(f"Review failed for {change_set.item_id}: {reason}")
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        review = outcome.value
        results.append(review)
        if review.failed > 0:
            batch_failed = True
        if review.approved:
            approved.add((change_set.item_id, change_set.revision))
        logger.info(
            "Review round %d: %s %s (%d passed, %d failed)",
            review_round,
            change_set.item_id,
            "approved" if review.approved else "rejected",
            review.passed,
            review.failed,
        )

    change_sets = [
        replace(c, status="reviewed") if c.status == "pending" and (c.item_id, c.revision) in approved else c
        for c in state["change_sets"]
    ]
    return {
        "phase": SwarmPhase.REVIEW,
        "review_round": review_round,
        "rework_rounds": state["rework_rounds"] + 1 if batch_failed else state["rework_rounds"],
        "change_sets": change_sets,
        "review_results": results,
        "issues": issues,
    }


# ── Integrate ─────────────────────────────────────────────────────────────────


async def integrate_node(state: SwarmState, config: RunnableConfig) -> dict:
    """Merge reviewed work, complete its items, unblock and requeue."""
    merged_ids = {c.item_id for c in state["change_sets"] if c.status == "reviewed"}
    change_sets = [replace(c, status="merged") if c.status == "reviewed" else c for c in state["change_sets"]]

    workers = list(state["workers"])
    for worker in state["workers"]:
        if worker.assigned_item in merged_ids:
            workers = release(workers, worker.id)

    done = [
        replace(item, status="completed", assigned_worker=None)
        for item in state["active"]
        if item.id in merged_ids
    ]
    active = [item for item in state["active"] if item.id not in merged_ids]
    completed = state["completed"] + done
    for item in done:
        logger.info("Completed %s", item.id)

    queue = DependencyQueue(backlog=tuple(state["backlog"]), blocked=tuple(state["blocked"]))
    queue, _ = queue.try_unblock({item.id for item in completed})

    issues = list(state["issues"])
    abandoned = list(state["abandoned"])
    for item in state["deferred"]:
        if item.draft_attempts < state["max_draft_attempts"]:
            queue = queue.requeue(item)
        else:
            abandoned.append(item)
            issues.append(f"Abandoned {item.id} after {item.draft_attempts} failed draft attempt(s)")
            logger.error("Abandoned %s after %d draft attempts", item.id, item.draft_attempts)

    newly_abandoned = [item.id for item in abandoned[len(state["abandoned"]) :]]
    if newly_abandoned:
        waiting = queue.blocked + queue.backlog
        dependencies = {item.id: item.dependencies for item in waiting}
        for item in waiting:
            lost = [a for a in newly_abandoned if any(depends_on(dependencies, d, a) for d in item.dependencies)]
            if lost:
                issues.append(f"{item.id} can never start: it depends on abandoned item(s) {', '.join(lost)}")
                logger.warning("%s is stranded behind abandoned %s", item.id, ", ".join(lost))

    cycle = state["cycle"] + 1
    if cycle >= state["max_cycles"] and (queue.backlog or active):
        issues.append(f"Stopped after {cycle} cycle(s) with work remaining")
        logger.warning("Cycle limit %d reached with work remaining", state["max_cycles"])

    return {
        "phase": SwarmPhase.INTEGRATE,
        "backlog": list(queue.backlog),
        "blocked": list(queue.blocked),
        "active": active,
        "completed": completed,
        "deferred": [],
        "abandoned": abandoned,
        "workers": workers,
        "change_sets": change_sets,
        "issues": issues,
        "cycle": cycle,
        "rework_rounds": 0,
    }
