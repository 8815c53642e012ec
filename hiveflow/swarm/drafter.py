"""Scrum-master drafting: expand a work item into tasks."""

from __future__ import annotations

import asyncio
import logging

from hiveflow.llm.generator import ContentGenerator, GenerationOptions
from hiveflow.models import WorkItem
from hiveflow.parsing import DraftOutcome, ParseResult, parse_draft
from hiveflow.personas import Role, get_agent_prompt

logger = logging.getLogger(__name__)

DRAFT_OPTIONS = GenerationOptions(temperature=0.7, max_output_tokens=2048)


async def draft_item(
    generator: ContentGenerator,
    item: WorkItem,
    upcoming: list[WorkItem],
    cancel_event: asyncio.Event | None = None,
) -> ParseResult[DraftOutcome]:
    """Ask the scrum master to break *item* into tasks.

    Raises GenerationError when the service fails; returns ParseFailure when
    the reply cannot be read.
    """
    system_prompt = get_agent_prompt(Role.SM, parallelization_mode=True)
    text = await generator.generate(
        system_prompt, _build_draft_prompt(item, upcoming), DRAFT_OPTIONS, cancel_event
    )
    return parse_draft(text, item)


def _numbered(lines: tuple[str, ...] | list[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, 1)) or "None"


def _build_draft_prompt(item: WorkItem, upcoming: list[WorkItem]) -> str:
    context = "\n".join(f"- {other.id}: {other.title}" for other in upcoming) or "None"
    deps = ", ".join(item.dependencies) or "None"
    return f"""Draft a detailed implementation plan for this story, optimized for parallel swarm execution:

STORY:
ID: {item.id}
Title: {item.title}
Description: {item.description}

ACCEPTANCE CRITERIA:
{_numbered(item.acceptance_criteria)}

EXISTING DEPENDENCIES:
{deps}

CONTEXT - Other stories in queue:
{context}

YOUR TASK:
1. Break this story into detailed tasks
2. Identify any hard dependencies on other stories (use their ids)
3. Identify potential file conflicts with other in-flight stories

Respond with ONLY a JSON object:
{{
  "story": {{
    "id": "{item.id}",
    "tasks": [
      {{"id": "TASK-001", "description": "...", "files": ["path/to/file"]}}
    ],
    "hardDependencies": [],
    "softDependencies": [],
    "parallelizationNotes": "..."
  }}
}}"""
