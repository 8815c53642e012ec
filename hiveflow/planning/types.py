"""Shared types for the planning module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypedDict

from hiveflow.models import Artifact, Epic, WorkItem


class PlanningPhase(str, Enum):
    BRIEF = "brief"
    REQUIREMENTS = "requirements"
    UX = "ux"
    ARCHITECTURE = "architecture"
    VALIDATE = "validate"
    SHARD = "shard"
    COMPLETE = "complete"


class PlanningState(TypedDict):
    # Inputs
    idea: str
    project_type: str
    include_ux: bool
    # Latest artifact per kind; a kind is absent until its phase has run
    artifacts: dict[str, Artifact]
    # Validation
    validation_issues: list[str]
    needs_user_input: bool
    validation_rounds: int
    max_validation_rounds: int | None
    # Sharded backlog
    epics: list[Epic]
    items: list[WorkItem]
    # Control
    phase: PlanningPhase
    # Extra brief-to-shard passes the caller asked for
    restarts_remaining: int


@dataclass
class PlanningResult:
    """Final planning state plus convenience accessors."""

    state: PlanningState
    duration_seconds: float

    @property
    def items(self) -> list[WorkItem]:
        return self.state["items"]

    @property
    def epics(self) -> list[Epic]:
        return self.state["epics"]

    @property
    def issues(self) -> list[str]:
        return self.state["validation_issues"]

    @property
    def needs_user_input(self) -> bool:
        return self.state["needs_user_input"]

    @property
    def artifacts(self) -> list[Artifact]:
        """Produced artifacts in phase order."""
        order = ("brief", "requirements", "ux", "architecture")
        return [self.state["artifacts"][k] for k in order if k in self.state["artifacts"]]
