"""Planning workflow: transition table and graph construction."""

from __future__ import annotations

from langgraph.graph.state import CompiledStateGraph

from hiveflow.planning.nodes import (
    architecture_node,
    brief_node,
    requirements_node,
    shard_node,
    ux_node,
    validate_node,
)
from hiveflow.planning.types import PlanningPhase, PlanningState
from hiveflow.workflow import PhasedWorkflow


def route_after_brief(state: PlanningState) -> PlanningPhase:
    return PlanningPhase.REQUIREMENTS


def route_after_requirements(state: PlanningState) -> PlanningPhase:
    return PlanningPhase.UX if state["include_ux"] else PlanningPhase.ARCHITECTURE


def route_after_ux(state: PlanningState) -> PlanningPhase:
    return PlanningPhase.ARCHITECTURE


def route_after_architecture(state: PlanningState) -> PlanningPhase:
    return PlanningPhase.VALIDATE


def route_after_validate(state: PlanningState) -> PlanningPhase:
    """Shard when clean, otherwise regenerate requirements until the round cap."""
    if not state["validation_issues"]:
        return PlanningPhase.SHARD
    cap = state["max_validation_rounds"]
    if cap is None or state["validation_rounds"] < cap:
        return PlanningPhase.REQUIREMENTS
    return PlanningPhase.COMPLETE


def route_after_shard(state: PlanningState) -> PlanningPhase:
    """Start over from the brief while the caller's restart budget lasts."""
    return PlanningPhase.BRIEF if state["restarts_remaining"] > 0 else PlanningPhase.COMPLETE


PLANNING_WORKFLOW: PhasedWorkflow[PlanningPhase] = PhasedWorkflow(
    phases=PlanningPhase,
    state_schema=PlanningState,
    nodes={
        PlanningPhase.BRIEF: brief_node,
        PlanningPhase.REQUIREMENTS: requirements_node,
        PlanningPhase.UX: ux_node,
        PlanningPhase.ARCHITECTURE: architecture_node,
        PlanningPhase.VALIDATE: validate_node,
        PlanningPhase.SHARD: shard_node,
    },
    transitions={
        PlanningPhase.BRIEF: route_after_brief,
        PlanningPhase.REQUIREMENTS: route_after_requirements,
        PlanningPhase.UX: route_after_ux,
        PlanningPhase.ARCHITECTURE: route_after_architecture,
        PlanningPhase.VALIDATE: route_after_validate,
        PlanningPhase.SHARD: route_after_shard,
    },
    entry=PlanningPhase.BRIEF,
    terminal=PlanningPhase.COMPLETE,
)


def build_planning_graph() -> CompiledStateGraph:
    """Compile the planning state machine."""
    return PLANNING_WORKFLOW.build()
