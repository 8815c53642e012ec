"""Swarm orchestrator: drives a backlog through the phased swarm graph."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from langgraph.errors import GraphRecursionError

from hiveflow.config import SwarmConfig
from hiveflow.errors import WorkflowError
from hiveflow.llm.generator import ContentGenerator
from hiveflow.models import WorkItem
from hiveflow.swarm.graph import build_swarm_graph
from hiveflow.swarm.state import make_initial_swarm_state
from hiveflow.swarm.types import SwarmPhase, SwarmResult, SwarmState, SwarmStatus

logger = logging.getLogger(__name__)


class SwarmOrchestrator:
    """Runs one swarm over a backlog of work items.

    Usage:
        orchestrator = SwarmOrchestrator(
            backlog=items,
            generator=create_generator(config.coding_model),
            config=SwarmConfig(max_workers=3),
        )
        result = await orchestrator.run()

    ``on_phase`` is called with ``(phase, state)`` after every phase; it only
    observes the state.
    """

    def __init__(
        self,
        backlog: list[WorkItem],
        generator: ContentGenerator,
        config: SwarmConfig | None = None,
        on_phase: Callable[[SwarmPhase, SwarmState], Any] | None = None,
    ) -> None:
        self.backlog = list(backlog)
        self.generator = generator
        self.config = config or SwarmConfig()
        self._on_phase = on_phase
        self._cancel_event = asyncio.Event()

    def cancel(self) -> None:
        """Abort in-flight generation calls and stop after the current phase."""
        logger.info("Swarm cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def run(self) -> SwarmResult:
        started = time.monotonic()
        state = make_initial_swarm_state(self.backlog, self.config)
        graph = build_swarm_graph()
        run_config = {
            "configurable": {
                "generator": self.generator,
                "cancel_event": self._cancel_event,
            },
            "recursion_limit": self.config.recursion_limit,
        }

        logger.info(
            "Starting swarm: %d item(s), %d worker(s)", len(state["backlog"]), self.config.max_workers
        )
        final: SwarmState = state
        first = True
        try:
            async for values in graph.astream(state, config=run_config, stream_mode="values"):  # type: ignore[arg-type]
                final = values  # type: ignore[assignment]
                # The stream opens with the input state
                if first and values == state:
                    first = False
                    continue
                first = False
                if self._on_phase is not None:
                    self._on_phase(SwarmPhase(final["phase"]), final)
                if self.cancelled:
                    final = {**final, "issues": final["issues"] + ["Swarm cancelled"]}  # type: ignore[typeddict-item]
                    break
        except GraphRecursionError as e:
            raise WorkflowError(
                f"Swarm exceeded {self.config.recursion_limit} phase steps; raise swarm.recursion_limit"
            ) from e

        final = {**final, "phase": SwarmPhase.COMPLETE}  # type: ignore[typeddict-item]
        status = _status(final)
        logger.info(
            "Swarm finished (%s): %d completed, %d issue(s)", status, len(final["completed"]), len(final["issues"])
        )
        return SwarmResult(status=status, state=final, duration_seconds=time.monotonic() - started)


def _status(state: SwarmState) -> SwarmStatus:
    remaining = (
        len(state["backlog"])
        + len(state["active"])
        + len(state["blocked"])
        + len(state["deferred"])
        + len(state["abandoned"])
    )
    if remaining == 0:
        return "achieved"
    if state["completed"]:
        return "partial"
    return "failed"
