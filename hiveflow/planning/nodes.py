"""Planning phase bodies: one persona per phase, one artifact per content phase."""

from __future__ import annotations

import asyncio
import logging

from langchain_core.runnables import RunnableConfig

from hiveflow.errors import GenerationError, MissingArtifactError, PhaseFailedError
from hiveflow.llm.generator import ContentGenerator, GenerationOptions
from hiveflow.models import Artifact, ArtifactKind, find_dangling_dependencies
from hiveflow.parsing import ParseFailure, parse_shard
from hiveflow.personas import Role, get_agent_prompt
from hiveflow.planning.types import PlanningPhase, PlanningState

logger = logging.getLogger(__name__)

PLANNING_OPTIONS = GenerationOptions(temperature=0.7, max_output_tokens=4096)

VALIDATED_MARKER = "VALIDATED"


def _services(config: RunnableConfig) -> tuple[ContentGenerator, asyncio.Event | None]:
    cfg = config.get("configurable", {})
    return cfg["generator"], cfg.get("cancel_event")


def _require(state: PlanningState, phase: PlanningPhase, *kinds: ArtifactKind) -> None:
    for kind in kinds:
        if kind not in state["artifacts"]:
            raise MissingArtifactError(phase.value, kind)


async def _generate(config: RunnableConfig, role: Role, prompt: str, phase: PlanningPhase) -> str:
    generator, cancel_event = _services(config)
    try:
        return await generator.generate(get_agent_prompt(role), prompt, PLANNING_OPTIONS, cancel_event)
    except GenerationError as e:
        raise PhaseFailedError(f"Phase '{phase.value}' failed: {e}") from e


def _store(state: PlanningState, phase: PlanningPhase, content: str) -> dict[str, Artifact]:
    """Artifacts with *phase*'s artifact replaced, or bumped to the next version when the phase reruns.

    The producing phase is recorded as the author.
    """
    kind: ArtifactKind = phase.value  # type: ignore[assignment]
    previous = state["artifacts"].get(kind)
    if previous is None:
        artifact = Artifact(kind=kind, content=content, author=phase.value)
    else:
        artifact = previous.revise(content, phase.value)
    return {**state["artifacts"], kind: artifact}


# ── Content phases ────────────────────────────────────────────────────────────


async def brief_node(state: PlanningState, config: RunnableConfig) -> dict:
    idea = state["idea"].strip() or "User has not provided a project description yet."
    context = (
        "This is a brownfield project: the idea extends an existing codebase. "
        "Call out integration points and constraints imposed by the current system."
        if state["project_type"] == "brownfield"
        else "This is a greenfield project built from scratch."
    )
    prompt = f"""Create a comprehensive project brief for the following idea:

{idea}

{context}

Include:
1. Problem statement
2. Target users
3. Key objectives
4. Success criteria
5. High-level requirements

Format as a structured markdown document."""
    content = await _generate(config, Role.ANALYST, prompt, PlanningPhase.BRIEF)
    logger.info("Project brief written (%d chars)", len(content))
    delta: dict = {
        "phase": PlanningPhase.BRIEF,
        "artifacts": _store(state, PlanningPhase.BRIEF, content),
        "needs_user_input": False,
    }
    # Reached again from shard: a fresh pass with its own validation budget
    if PlanningPhase(state["phase"]) is PlanningPhase.SHARD:
        delta.update(
            restarts_remaining=state["restarts_remaining"] - 1,
            validation_issues=[],
            validation_rounds=0,
            epics=[],
            items=[],
        )
        logger.info("Planning restarted (%d restart(s) left)", state["restarts_remaining"] - 1)
    return delta


async def requirements_node(state: PlanningState, config: RunnableConfig) -> dict:
    _require(state, PlanningPhase.REQUIREMENTS, "brief")
    prompt = f"""Based on this project brief, create a comprehensive Product Requirements Document (PRD):

PROJECT BRIEF:
{state["artifacts"]["brief"].content}
"""
    if "requirements" in state["artifacts"] and state["validation_issues"]:
        issues = "\n".join(state["validation_issues"])
        prompt += f"""
PREVIOUS PRD:
{state["artifacts"]["requirements"].content}

The previous PRD failed validation. Address these issues:
{issues}
"""
    prompt += """
The PRD should include:
1. Executive Summary
2. Functional Requirements (FRs)
3. Non-Functional Requirements (NFRs)
4. Epics (high-level feature groups)
5. User Stories (within each epic)
   - Format: "As a [user], I want [action] so that [benefit]"
   - Include acceptance criteria for each story
6. Success Metrics
7. Out of Scope

Format as structured markdown with clear sections."""
    content = await _generate(config, Role.PM, prompt, PlanningPhase.REQUIREMENTS)
    artifacts = _store(state, PlanningPhase.REQUIREMENTS, content)
    logger.info("Requirements v%d written", artifacts["requirements"].version)
    return {"phase": PlanningPhase.REQUIREMENTS, "artifacts": artifacts}


async def ux_node(state: PlanningState, config: RunnableConfig) -> dict:
    _require(state, PlanningPhase.UX, "requirements")
    prompt = f"""Based on this PRD, create a comprehensive UX specification:

PRD:
{state["artifacts"]["requirements"].content}

The UX spec should include:
1. User personas
2. User flows
3. Wireframes (described textually)
4. Component specifications
5. Interaction patterns
6. Accessibility requirements
7. Responsive design considerations

Format as structured markdown."""
    content = await _generate(config, Role.UX, prompt, PlanningPhase.UX)
    return {"phase": PlanningPhase.UX, "artifacts": _store(state, PlanningPhase.UX, content)}


async def architecture_node(state: PlanningState, config: RunnableConfig) -> dict:
    _require(state, PlanningPhase.ARCHITECTURE, "requirements")
    artifacts = state["artifacts"]
    inputs = [f"PRD:\n{artifacts['requirements'].content}"]
    if "ux" in artifacts:
        inputs.append(f"UX SPEC:\n{artifacts['ux'].content}")
    joined = "\n\n".join(inputs)
    prompt = f"""Based on these requirements, create a comprehensive technical architecture:

{joined}

The architecture should include:
1. System Overview
2. Technology Stack
3. High-Level Architecture (described textually)
4. API Design
5. Data Models
6. Security Considerations
7. Scalability Strategy
8. Development Approach
   - Recommended story implementation order
   - Dependencies between stories
9. Testing Strategy

Format as structured markdown."""
    content = await _generate(config, Role.ARCHITECT, prompt, PlanningPhase.ARCHITECTURE)
    return {
        "phase": PlanningPhase.ARCHITECTURE,
        "artifacts": _store(state, PlanningPhase.ARCHITECTURE, content),
    }


# ── Validation ────────────────────────────────────────────────────────────────


def is_validated(text: str) -> bool:
    """True when the reviewer's reply opens with the approval marker."""
    return text.strip().lstrip("-*# ").upper().startswith(VALIDATED_MARKER)


async def validate_node(state: PlanningState, config: RunnableConfig) -> dict:
    """Check all artifacts against each other; a failed call counts as not validated."""
    _require(state, PlanningPhase.VALIDATE, "requirements", "architecture")
    sections = [
        (label, state["artifacts"].get(key))
        for label, key in (
            ("PROJECT BRIEF", "brief"),
            ("PRD", "requirements"),
            ("UX SPEC", "ux"),
            ("ARCHITECTURE", "architecture"),
        )
    ]
    artifacts = "\n\n---\n\n".join(f"{label}:\n{a.content}" for label, a in sections if a is not None)
    prompt = f"""Review these project artifacts for consistency, completeness, and alignment:

{artifacts}

Check for:
1. Consistency: Do all documents align with each other?
2. Completeness: Are all necessary sections present?
3. Clarity: Are requirements and architecture clearly defined?
4. Feasibility: Is the architecture appropriate for the requirements?
5. Gaps: Are there any missing requirements or architectural decisions?

If everything looks good, respond with exactly "{VALIDATED_MARKER}".
Otherwise respond with a bulleted list of issues that need to be addressed."""

    rounds = state["validation_rounds"] + 1
    generator, cancel_event = _services(config)
    try:
        reply = await generator.generate(get_agent_prompt(Role.PO), prompt, PLANNING_OPTIONS, cancel_event)
    except GenerationError as e:
        logger.warning("Validation round %d could not run: %s", rounds, e)
        issues = [f"Validation could not be completed: {e}"]
    else:
        issues = [] if is_validated(reply) else [reply.strip()]

    if issues:
        logger.info("Validation round %d found issues", rounds)
    else:
        logger.info("Artifacts validated after %d round(s)", rounds)
    return {
        "phase": PlanningPhase.VALIDATE,
        "validation_rounds": rounds,
        "validation_issues": issues,
        "needs_user_input": bool(issues),
    }


# ── Sharding ──────────────────────────────────────────────────────────────────


async def shard_node(state: PlanningState, config: RunnableConfig) -> dict:
    """Decompose requirements and architecture into epics and work items."""
    _require(state, PlanningPhase.SHARD, "requirements", "architecture")
    prompt = f"""Extract the epics and stories from this PRD, and enrich them with implementation details from the architecture:

PRD:
{state["artifacts"]["requirements"].content}

ARCHITECTURE:
{state["artifacts"]["architecture"].content}

For each epic list its user stories. For each story give an id
(format EPIC-XXX-YYY), title, description, acceptance criteria and the ids of
stories it depends on.

Respond with ONLY a JSON object:
{{
  "epics": [
    {{
      "id": "EPIC-001",
      "title": "...",
      "description": "...",
      "stories": [
        {{
          "id": "EPIC-001-001",
          "title": "...",
          "description": "...",
          "acceptanceCriteria": ["..."],
          "dependencies": [],
          "tasks": []
        }}
      ]
    }}
  ]
}}"""
    generator, cancel_event = _services(config)
    try:
        reply = await generator.generate(get_agent_prompt(Role.PO), prompt, PLANNING_OPTIONS, cancel_event)
    except GenerationError as e:
        logger.warning("Sharding could not run: %s", e)
        return {
            "phase": PlanningPhase.SHARD,
            "validation_issues": [f"Failed to shard epics/stories: {e}"],
            "needs_user_input": True,
        }

    result = parse_shard(reply)
    if isinstance(result, ParseFailure):
        logger.warning("Sharding output is malformed: %s", result.reason)
        return {
            "phase": PlanningPhase.SHARD,
            "validation_issues": [f"Failed to parse epics/stories: {result.reason}"],
            "needs_user_input": True,
        }

    shard = result.value
    items = list(shard.items)
    issues = [
        f"{item_id} depends on unknown story(ies) {', '.join(missing)}"
        for item_id, missing in find_dangling_dependencies(items).items()
    ]
    logger.info("Sharded %d epic(s) into %d stories", len(shard.epics), len(items))
    return {
        "phase": PlanningPhase.SHARD,
        "epics": list(shard.epics),
        "items": items,
        "validation_issues": issues,
        "needs_user_input": bool(issues),
    }
