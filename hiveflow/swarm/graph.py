"""Swarm workflow: transition table and graph construction."""

from __future__ import annotations

from langgraph.graph.state import CompiledStateGraph

from hiveflow.swarm.nodes import assign_node, draft_node, execute_node, integrate_node, review_node
from hiveflow.swarm.types import SwarmPhase, SwarmState
from hiveflow.workflow import PhasedWorkflow


def route_after_draft(state: SwarmState) -> SwarmPhase:
    """Keep drafting until the backlog is drained."""
    return SwarmPhase.DRAFT if state["backlog"] else SwarmPhase.ASSIGN


def route_after_assign(state: SwarmState) -> SwarmPhase:
    return SwarmPhase.EXECUTE


def route_after_execute(state: SwarmState) -> SwarmPhase:
    return SwarmPhase.REVIEW


def route_after_review(state: SwarmState) -> SwarmPhase:
    """Rework the whole batch if any review in the latest round reported failures."""
    latest = [r for r in state["review_results"] if r.round == state["review_round"]]
    if any(r.failed > 0 for r in latest) and state["rework_rounds"] <= state["max_rework_rounds"]:
        return SwarmPhase.EXECUTE
    return SwarmPhase.INTEGRATE


def route_after_integrate(state: SwarmState) -> SwarmPhase:
    if state["cycle"] >= state["max_cycles"]:
        return SwarmPhase.COMPLETE
    if state["backlog"]:
        return SwarmPhase.DRAFT
    if state["active"]:
        return SwarmPhase.ASSIGN
    return SwarmPhase.COMPLETE


SWARM_WORKFLOW: PhasedWorkflow[SwarmPhase] = PhasedWorkflow(
    phases=SwarmPhase,
    state_schema=SwarmState,
    nodes={
        SwarmPhase.DRAFT: draft_node,
        SwarmPhase.ASSIGN: assign_node,
        SwarmPhase.EXECUTE: execute_node,
        SwarmPhase.REVIEW: review_node,
        SwarmPhase.INTEGRATE: integrate_node,
    },
    transitions={
        SwarmPhase.DRAFT: route_after_draft,
        SwarmPhase.ASSIGN: route_after_assign,
        SwarmPhase.EXECUTE: route_after_execute,
        SwarmPhase.REVIEW: route_after_review,
        SwarmPhase.INTEGRATE: route_after_integrate,
    },
    entry=SwarmPhase.DRAFT,
    terminal=SwarmPhase.COMPLETE,
)


def build_swarm_graph() -> CompiledStateGraph:
    """Compile the swarm state machine."""
    return SWARM_WORKFLOW.build()
