"""Domain types shared by the planning and swarm pipelines.

All values are frozen: a phase never edits an item in place, it builds a new
one with :func:`dataclasses.replace` and returns it in its state delta.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

ItemStatus = Literal["draft", "ready", "in_progress", "review", "completed"]
TaskStatus = Literal["pending", "in_progress", "completed"]
WorkerStatus = Literal["idle", "working", "blocked", "error"]
FileAction = Literal["create", "modify", "delete"]
# "superseded" is terminal: an unmerged change set replaced by a newer one
ChangeSetStatus = Literal["pending", "reviewed", "merged", "superseded"]
ArtifactKind = Literal["brief", "requirements", "ux", "architecture"]
EpicStatus = Literal["planned", "in_progress", "completed"]


@dataclass(frozen=True)
class Task:
    """A unit of implementation inside a work item."""

    id: str
    description: str
    status: TaskStatus = "pending"


@dataclass(frozen=True)
class WorkItem:
    """A story: acceptance criteria, tasks and the stories it depends on."""

    id: str
    title: str
    description: str = ""
    acceptance_criteria: tuple[str, ...] = ()
    tasks: tuple[Task, ...] = ()
    dependencies: tuple[str, ...] = ()
    status: ItemStatus = "draft"
    assigned_worker: str | None = None
    epic_id: str | None = None
    draft_attempts: int = 0

    def is_ready(self, completed_ids: set[str] | frozenset[str]) -> bool:
        """True when every dependency is in *completed_ids*."""
        return all(dep in completed_ids for dep in self.dependencies)

    def missing_dependencies(self, completed_ids: set[str] | frozenset[str]) -> list[str]:
        return [dep for dep in self.dependencies if dep not in completed_ids]


@dataclass(frozen=True)
class Worker:
    """An execution slot. ``working`` iff an item is assigned."""

    id: str
    name: str
    status: WorkerStatus = "idle"
    assigned_item: str | None = None
    progress: int = 0


@dataclass(frozen=True)
class FileChange:
    path: str
    action: FileAction
    content: str | None = None
    diff: str | None = None


@dataclass(frozen=True)
class ChangeSet:
    """Output of one worker for one work item, subject to review."""

    item_id: str
    worker_id: str
    files: tuple[FileChange, ...]
    summary: str
    status: ChangeSetStatus = "pending"
    revision: int = 1


@dataclass(frozen=True)
class ReviewFailure:
    description: str
    detail: str


@dataclass(frozen=True)
class ReviewResult:
    """Verdict on one change set in one review round."""

    item_id: str
    passed: int
    failed: int
    approved: bool
    failures: tuple[ReviewFailure, ...] = ()
    coverage: float | None = None
    round: int = 1


@dataclass(frozen=True)
class Artifact:
    """Immutable planning document plus provenance."""

    kind: ArtifactKind
    content: str
    # Phase that produced this version
    author: str
    version: int = 1
    modified_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def revise(self, content: str, author: str) -> Artifact:
        """Return a new artifact one version above this one."""
        return Artifact(kind=self.kind, content=content, author=author, version=self.version + 1)


@dataclass(frozen=True)
class Epic:
    id: str
    title: str
    description: str = ""
    item_ids: tuple[str, ...] = ()
    status: EpicStatus = "planned"


def find_dangling_dependencies(items: list[WorkItem], known_ids: set[str] | None = None) -> dict[str, list[str]]:
    """Map item id -> dependency ids that reference no known item."""
    known = set(known_ids or ()) | {item.id for item in items}
    dangling: dict[str, list[str]] = {}
    for item in items:
        missing = [dep for dep in item.dependencies if dep not in known]
        if missing:
            dangling[item.id] = missing
    return dangling


def depends_on(dependencies: dict[str, tuple[str, ...]], start: str, target: str) -> bool:
    """True when *target* is reachable from *start* by following *dependencies*.

    ``start`` itself counts, so ``depends_on(deps, a, a)`` is always true.
    """
    seen: set[str] = set()
    stack = [start]
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(dependencies.get(current, ()))
    return False


def find_dependency_cycles(items: list[WorkItem]) -> list[str]:
    """Ids of items that (transitively) depend on themselves, in input order."""
    dependencies = {item.id: item.dependencies for item in items}
    return [
        item.id
        for item in items
        if any(depends_on(dependencies, dep, item.id) for dep in item.dependencies)
    ]
