"""Dependency queue: backlog order plus the set of items waiting on dependencies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from hiveflow.models import WorkItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyQueue:
    """Immutable backlog/blocked partition.

    An item is ready iff all of its dependencies are completed. Every
    operation returns a new queue; the caller writes ``backlog`` and
    ``blocked`` back into its state delta.
    """

    backlog: tuple[WorkItem, ...] = ()
    blocked: tuple[WorkItem, ...] = ()

    @property
    def blocked_ids(self) -> list[str]:
        return [item.id for item in self.blocked]

    def ids(self) -> set[str]:
        return {item.id for item in self.backlog} | {item.id for item in self.blocked}

    def enqueue(self, item: WorkItem, known_ids: set[str] | frozenset[str] = frozenset()) -> DependencyQueue:
        """Append *item* unless its id already exists here or in *known_ids*."""
        if item.id in known_ids or item.id in self.ids():
            logger.debug("Ignoring duplicate work item %s", item.id)
            return self
        return replace(self, backlog=self.backlog + (item,))

    def dequeue_next(self) -> tuple[WorkItem | None, DependencyQueue]:
        """Pop the head of the backlog (FIFO, not dependency order)."""
        if not self.backlog:
            return None, self
        return self.backlog[0], replace(self, backlog=self.backlog[1:])

    def mark_blocked(self, item: WorkItem) -> DependencyQueue:
        if item.id in {b.id for b in self.blocked}:
            return self
        return replace(self, blocked=self.blocked + (item,))

    def reclassify(
        self, item: WorkItem, completed_ids: set[str] | frozenset[str]
    ) -> tuple[DependencyQueue, bool]:
        """Block *item* if a dependency is incomplete; returns (queue, is_ready)."""
        if item.is_ready(completed_ids):
            return self, True
        logger.info(
            "%s blocked on %s", item.id, ", ".join(item.missing_dependencies(completed_ids))
        )
        return self.mark_blocked(item), False

    def try_unblock(self, completed_ids: set[str] | frozenset[str]) -> tuple[DependencyQueue, list[WorkItem]]:
        """Move blocked items whose dependencies are now complete to the backlog front.

        Unblocked items keep their relative blocked order and are reset to
        ``draft`` so they are drafted again. Single pass: links further down
        a dependency chain wait for a later call.
        """
        unblocked: list[WorkItem] = []
        still_blocked: list[WorkItem] = []
        for item in self.blocked:
            if item.is_ready(completed_ids):
                unblocked.append(replace(item, status="draft", assigned_worker=None))
            else:
                still_blocked.append(item)
        if not unblocked:
            return self, []
        logger.info("Unblocked %s", ", ".join(item.id for item in unblocked))
        return (
            DependencyQueue(backlog=tuple(unblocked) + self.backlog, blocked=tuple(still_blocked)),
            unblocked,
        )

    def requeue(self, item: WorkItem) -> DependencyQueue:
        """Put a previously dequeued item back at the end of the backlog."""
        if item.id in {b.id for b in self.backlog}:
            return self
        return replace(self, backlog=self.backlog + (item,))
