"""Developer worker: implements one assigned work item."""

from __future__ import annotations

import asyncio
import logging
import time

from hiveflow.llm.generator import ContentGenerator, GenerationOptions
from hiveflow.models import ChangeSet, Worker, WorkItem
from hiveflow.parsing import ParseResult, parse_change_set
from hiveflow.personas import Role, get_agent_prompt

logger = logging.getLogger(__name__)

DEV_OPTIONS = GenerationOptions(temperature=0.3, max_output_tokens=8192)


async def run_worker(
    generator: ContentGenerator,
    worker: Worker,
    item: WorkItem,
    cancel_event: asyncio.Event | None = None,
) -> ParseResult[ChangeSet]:
    """Generate a change set for *item* on behalf of *worker*.

    Each worker only reads its own item, so any number of these can run
    concurrently. Raises GenerationError when the service fails or is
    cancelled.
    """
    started = time.monotonic()
    text = await generator.generate(
        get_agent_prompt(Role.DEV), _build_dev_prompt(item), DEV_OPTIONS, cancel_event
    )
    logger.debug("Worker %s produced %d chars for %s in %.1fs", worker.id, len(text), item.id, time.monotonic() - started)
    return parse_change_set(text, item.id, worker.id)


def _build_dev_prompt(item: WorkItem) -> str:
    tasks = "\n".join(f"{i}. {task.description}" for i, task in enumerate(item.tasks, 1)) or "None listed"
    criteria = "\n".join(f"{i}. {ac}" for i, ac in enumerate(item.acceptance_criteria, 1)) or "None listed"
    return f"""Implement this user story:

STORY {item.id}: {item.title}
{item.description}

TASKS:
{tasks}

ACCEPTANCE CRITERIA:
{criteria}

IMPLEMENTATION REQUIREMENTS:
- Write production-quality code
- Include comprehensive tests
- Follow project conventions

Respond with ONLY a JSON object:
{{
  "files": [
    {{"path": "src/feature.py", "action": "create", "content": "full file content"}}
  ],
  "tests": [
    {{"path": "tests/test_feature.py", "action": "create", "content": "full test file content"}}
  ],
  "commitMessage": "feat: short summary"
}}"""
