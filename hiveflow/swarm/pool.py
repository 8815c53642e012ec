"""Worker pool coordination: roster, deterministic assignment, release."""

from __future__ import annotations

import logging
import re
from dataclasses import replace

from hiveflow.models import Worker, WorkItem

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def worker_sort_key(worker_id: str) -> tuple:
    """Natural ordering so that dev-2 sorts before dev-10."""
    return tuple(int(part) if part.isdigit() else part for part in _DIGITS.split(worker_id))


def make_roster(size: int) -> list[Worker]:
    return [Worker(id=f"dev-{i}", name=f"Dev Agent {i}") for i in range(1, size + 1)]


def assign(
    active: list[WorkItem], workers: list[Worker]
) -> tuple[list[WorkItem], list[Worker], list[tuple[str, str]]]:
    """Pair unassigned ready items with idle workers.

    Items keep their active-list order, idle workers are taken in id order,
    and pairing is positional. Returns the updated item list, the updated
    roster and the ``(item_id, worker_id)`` pairs.
    """
    held = {w.assigned_item for w in workers if w.assigned_item is not None}
    candidates = [
        item
        for item in active
        if item.assigned_worker is None and item.status == "ready" and item.id not in held
    ]
    idle = sorted((w for w in workers if w.status == "idle"), key=lambda w: worker_sort_key(w.id))
    pairs = [(item.id, worker.id) for item, worker in zip(candidates, idle)]
    if not pairs:
        return active, workers, []

    by_item = dict(pairs)
    by_worker = {worker_id: item_id for item_id, worker_id in pairs}
    items = [
        replace(item, status="in_progress", assigned_worker=by_item[item.id]) if item.id in by_item else item
        for item in active
    ]
    roster = [
        replace(w, status="working", assigned_item=by_worker[w.id], progress=0) if w.id in by_worker else w
        for w in workers
    ]
    for item_id, worker_id in pairs:
        logger.info("Assigned %s to %s", item_id, worker_id)
    return items, roster, pairs


def release(workers: list[Worker], worker_id: str) -> list[Worker]:
    """Return *worker_id* to idle, whatever happened to its item."""
    return [
        replace(w, status="idle", assigned_item=None) if w.id == worker_id else w
        for w in workers
    ]


def set_progress(workers: list[Worker], worker_id: str, progress: int) -> list[Worker]:
    progress = max(0, min(100, progress))
    return [replace(w, progress=progress) if w.id == worker_id else w for w in workers]
