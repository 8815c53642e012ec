"""QA review of change sets."""

from __future__ import annotations

import asyncio
import logging

from hiveflow.llm.generator import ContentGenerator, GenerationOptions
from hiveflow.models import ChangeSet, ReviewResult, WorkItem
from hiveflow.parsing import ParseResult, parse_review
from hiveflow.personas import Role, get_agent_prompt

logger = logging.getLogger(__name__)

REVIEW_OPTIONS = GenerationOptions(temperature=0.3, max_output_tokens=2048)

# Characters of each file shown to the reviewer
_PREVIEW_CHARS = 1000


async def review_change_set(
    generator: ContentGenerator,
    change_set: ChangeSet,
    item: WorkItem,
    review_round: int,
    cancel_event: asyncio.Event | None = None,
) -> ParseResult[ReviewResult]:
    """Ask QA for a verdict on *change_set*. Raises GenerationError on service failure."""
    text = await generator.generate(
        get_agent_prompt(Role.QA),
        _build_review_prompt(change_set, item),
        REVIEW_OPTIONS,
        cancel_event,
    )
    return parse_review(text, item.id, review_round)


def _build_review_prompt(change_set: ChangeSet, item: WorkItem) -> str:
    criteria = "\n".join(f"{i}. {ac}" for i, ac in enumerate(item.acceptance_criteria, 1)) or "None listed"
    files = "\n\n".join(
        f"{f.path} ({f.action})\n{(f.content or f.diff or '')[:_PREVIEW_CHARS]}" for f in change_set.files
    ) or "No files changed"
    return f"""Review this code implementation for quality and completeness:

STORY {item.id}: {item.title}
{item.description}

ACCEPTANCE CRITERIA:
{criteria}

COMMIT MESSAGE: {change_set.summary}

CODE CHANGES:
{files}

REVIEW CHECKLIST:
1. Does the code meet all acceptance criteria?
2. Are there adequate tests?
3. Is the code quality acceptable?
4. Are there any security or performance concerns?

Respond with ONLY a JSON object:
{{
  "approved": true,
  "testResults": {{"passed": 10, "failed": 0, "coverage": 85}},
  "issues": [],
  "recommendation": "approve"
}}"""
