"""Phased workflows: a closed set of phases plus an exhaustive transition table.

A workflow is compiled into a LangGraph ``StateGraph``. LangGraph runs one
node at a time here and merges each node's partial dict into a fresh state
before routing, so no phase ever observes a half-applied update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from hiveflow.errors import WorkflowDefinitionError

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Enum)

Router = Callable[[Any], Any]


class PhasedWorkflow(Generic[P]):
    """Binds phase bodies and routers for one phase enumeration.

    ``terminal`` is the enum member that means "stop". Every other member
    must have a node and a router; the router is a pure function of state
    returning the next member.
    """

    def __init__(
        self,
        phases: type[P],
        state_schema: type,
        nodes: Mapping[P, Callable[..., Any]],
        transitions: Mapping[P, Router],
        entry: P,
        terminal: P,
    ) -> None:
        self.phases = phases
        self.state_schema = state_schema
        self.nodes = dict(nodes)
        self.transitions = dict(transitions)
        self.entry = entry
        self.terminal = terminal
        check_transition_table(phases, self.nodes, self.transitions, terminal)
        if entry is terminal:
            raise WorkflowDefinitionError("The entry phase cannot be the terminal phase")

    def next_phase(self, phase: P, state: Any) -> P:
        """Successor of *phase* for *state*; the terminal phase maps to itself."""
        if phase is self.terminal:
            return self.terminal
        nxt = self.transitions[phase](state)
        if not isinstance(nxt, self.phases):
            raise WorkflowDefinitionError(f"Router for {phase.value!r} returned {nxt!r}, not a {self.phases.__name__}")
        return nxt

    def _router(self, phase: P) -> Callable[[Any], str]:
        def route(state: Any) -> str:
            nxt = self.next_phase(phase, state)
            logger.debug("%s -> %s", phase.value, nxt.value)
            return END if nxt is self.terminal else nxt.value

        route.__name__ = f"route_after_{phase.value}"
        return route

    def build(self) -> CompiledStateGraph:
        """Compile the workflow into a LangGraph graph."""
        builder = StateGraph(self.state_schema)
        for phase, node in self.nodes.items():
            builder.add_node(phase.value, node)
        builder.add_edge(START, self.entry.value)

        targets: dict[str, str] = {p.value: p.value for p in self.phases if p is not self.terminal}
        targets[END] = END
        for phase in self.nodes:
            builder.add_conditional_edges(phase.value, self._router(phase), targets)
        return builder.compile()


def check_transition_table(
    phases: type[P],
    nodes: Mapping[P, Any],
    transitions: Mapping[P, Router],
    terminal: P,
) -> None:
    """Raise WorkflowDefinitionError unless every non-terminal phase is wired."""
    expected = {p for p in phases if p is not terminal}
    missing_nodes = expected - set(nodes)
    missing_edges = expected - set(transitions)
    extra = (set(nodes) | set(transitions)) - expected
    problems = []
    if missing_nodes:
        problems.append("no node for " + ", ".join(sorted(p.value for p in missing_nodes)))
    if missing_edges:
        problems.append("no transition for " + ", ".join(sorted(p.value for p in missing_edges)))
    if extra:
        problems.append("unexpected phases " + ", ".join(sorted(str(getattr(p, "value", p)) for p in extra)))
    if problems:
        raise WorkflowDefinitionError(f"{phases.__name__}: " + "; ".join(problems))
