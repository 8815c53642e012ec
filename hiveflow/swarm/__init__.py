"""Swarm pipeline: draft, assign, execute, review and integrate work items."""

from __future__ import annotations

from hiveflow.swarm.graph import SWARM_WORKFLOW, build_swarm_graph
from hiveflow.swarm.orchestrator import SwarmOrchestrator
from hiveflow.swarm.queue import DependencyQueue
from hiveflow.swarm.state import make_initial_swarm_state, summarize_swarm
from hiveflow.swarm.types import SwarmPhase, SwarmResult, SwarmState

__all__ = [
    "SWARM_WORKFLOW",
    "DependencyQueue",
    "SwarmOrchestrator",
    "SwarmPhase",
    "SwarmResult",
    "SwarmState",
    "build_swarm_graph",
    "make_initial_swarm_state",
    "summarize_swarm",
]
