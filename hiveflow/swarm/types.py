"""Shared types for the swarm module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, TypedDict

from hiveflow.models import ChangeSet, ReviewResult, Worker, WorkItem


class SwarmPhase(str, Enum):
    DRAFT = "draft"
    ASSIGN = "assign"
    EXECUTE = "execute"
    REVIEW = "review"
    INTEGRATE = "integrate"
    COMPLETE = "complete"


class SwarmState(TypedDict):
    # Work items by lifecycle position
    backlog: list[WorkItem]
    active: list[WorkItem]
    completed: list[WorkItem]
    blocked: list[WorkItem]
    # Drafts that failed this cycle, and drafts that ran out of attempts
    deferred: list[WorkItem]
    abandoned: list[WorkItem]
    # Worker roster
    workers: list[Worker]
    max_workers: int
    # Append-only logs
    change_sets: list[ChangeSet]
    review_results: list[ReviewResult]
    issues: list[str]
    # Loop control
    phase: SwarmPhase
    cycle: int
    max_cycles: int
    review_round: int
    rework_rounds: int
    max_rework_rounds: int
    max_draft_attempts: int


SwarmStatus = Literal["achieved", "partial", "failed"]


@dataclass
class SwarmResult:
    """Final state of a swarm run plus a one-word verdict."""

    status: SwarmStatus
    state: SwarmState
    duration_seconds: float

    @property
    def completed(self) -> list[WorkItem]:
        return self.state["completed"]

    @property
    def issues(self) -> list[str]:
        return self.state["issues"]
