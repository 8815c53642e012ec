"""Planning pipeline: brief, requirements, UX, architecture, validation, sharding."""

from __future__ import annotations

from hiveflow.planning.graph import PLANNING_WORKFLOW, build_planning_graph
from hiveflow.planning.pipeline import PlanningPipeline, make_initial_planning_state
from hiveflow.planning.types import PlanningPhase, PlanningResult, PlanningState

__all__ = [
    "PLANNING_WORKFLOW",
    "PlanningPhase",
    "PlanningPipeline",
    "PlanningResult",
    "PlanningState",
    "build_planning_graph",
    "make_initial_planning_state",
]
