"""Planning pipeline: idea to validated artifacts to a sharded backlog."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from langgraph.errors import GraphRecursionError

from hiveflow.config import PlanningConfig
from hiveflow.errors import WorkflowError
from hiveflow.llm.generator import ContentGenerator
from hiveflow.planning.graph import build_planning_graph
from hiveflow.planning.types import PlanningPhase, PlanningResult, PlanningState

logger = logging.getLogger(__name__)


def make_initial_planning_state(
    idea: str, config: PlanningConfig | None = None, restarts: int = 0
) -> PlanningState:
    cfg = config or PlanningConfig()
    return PlanningState(
        idea=idea,
        project_type=cfg.project_type,
        include_ux=cfg.include_ux,
        artifacts={},
        validation_issues=[],
        needs_user_input=False,
        validation_rounds=0,
        max_validation_rounds=cfg.max_validation_rounds,
        epics=[],
        items=[],
        phase=PlanningPhase.BRIEF,
        restarts_remaining=restarts,
    )


class PlanningPipeline:
    """Runs the planning graph for one idea.

    Missing predecessor artifacts and failed content phases raise
    :class:`~hiveflow.errors.WorkflowError` out of :meth:`run`; validation
    and sharding problems end up in ``PlanningResult.issues``.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        config: PlanningConfig | None = None,
        on_phase: Callable[[PlanningPhase, PlanningState], Any] | None = None,
    ) -> None:
        self.generator = generator
        self.config = config or PlanningConfig()
        self._on_phase = on_phase
        self._cancel_event = asyncio.Event()

    def cancel(self) -> None:
        self._cancel_event.set()

    async def run(self, idea: str, restarts: int = 0) -> PlanningResult:
        """Plan *idea*; *restarts* extra passes regenerate every artifact after sharding."""
        if restarts < 0:
            raise ValueError(f"restarts must not be negative, got {restarts}")
        started = time.monotonic()
        graph = build_planning_graph()
        run_config = {
            "configurable": {
                "generator": self.generator,
                "cancel_event": self._cancel_event,
            },
            "recursion_limit": self.config.recursion_limit,
        }
        logger.info("Planning %s project (ux=%s)", self.config.project_type, self.config.include_ux)

        state = make_initial_planning_state(idea, self.config, restarts)
        final: PlanningState = state
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
                    self._on_phase(PlanningPhase(final["phase"]), final)
        except GraphRecursionError as e:
            raise WorkflowError(
                f"Planning exceeded {self.config.recursion_limit} phase steps; set planning.max_validation_rounds"
            ) from e

        final = {**final, "phase": PlanningPhase.COMPLETE}  # type: ignore[typeddict-item]
        return PlanningResult(state=final, duration_seconds=time.monotonic() - started)
