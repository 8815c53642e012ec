"""Parse generated text into domain values.

Every parser returns either :class:`Parsed` or :class:`ParseFailure`; none of
them raises on malformed model output.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from hiveflow.models import (
    ChangeSet,
    Epic,
    FileChange,
    ReviewFailure,
    ReviewResult,
    Task,
    WorkItem,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)
_FILE_ACTIONS = ("create", "modify", "delete")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Parsed[T] | ParseFailure


@dataclass(frozen=True)
class DraftOutcome:
    """A drafted work item and the hard dependencies the drafter proposed."""

    item: WorkItem
    generated_dependencies: tuple[str, ...]


@dataclass(frozen=True)
class ShardOutcome:
    epics: tuple[Epic, ...]
    items: tuple[WorkItem, ...]


def extract_json(text: str) -> Any:
    """Decode the JSON payload in *text*.

    Accepts bare JSON, a fenced ```json block, or JSON embedded in prose.
    Raises ``ValueError`` when nothing decodes.
    """
    content = text.strip()
    fenced = _FENCE_RE.search(content)
    if fenced:
        content = fenced.group(1).strip()
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost object or array in the text
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = content.find(open_ch)
        end = content.rfind(close_ch)
        if start != -1 and end > start:
            try:
                return json.loads(content[start : end + 1])
            except json.JSONDecodeError:
                continue
    raise ValueError("no JSON payload found")


def _decode(text: str) -> Any | ParseFailure:
    try:
        return extract_json(text)
    except ValueError as e:
        return ParseFailure(f"invalid JSON: {e}")


def _str_list(value: Any) -> list[str] | None:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return list(value)


def parse_draft(text: str, item: WorkItem) -> ParseResult[DraftOutcome]:
    """Parse a scrum-master draft for *item*."""
    raw = _decode(text)
    if isinstance(raw, ParseFailure):
        return raw
    if not isinstance(raw, dict) or not isinstance(raw.get("story"), dict):
        return ParseFailure("expected an object with a 'story' object")
    story = raw["story"]

    raw_tasks = story.get("tasks", [])
    if not isinstance(raw_tasks, list):
        return ParseFailure("'story.tasks' must be a list")
    tasks: list[Task] = []
    for i, entry in enumerate(raw_tasks, 1):
        if not isinstance(entry, dict) or not isinstance(entry.get("description"), str):
            return ParseFailure(f"task {i} has no description")
        task_id = entry.get("id")
        tasks.append(
            Task(
                id=task_id if isinstance(task_id, str) and task_id else f"{item.id}-T{i}",
                description=entry["description"],
            )
        )

    hard = _str_list(story.get("hardDependencies"))
    if hard is None:
        return ParseFailure("'story.hardDependencies' must be a list of ids")

    drafted = replace(item, tasks=tuple(tasks), status="ready")
    return Parsed(DraftOutcome(item=drafted, generated_dependencies=tuple(hard)))


def _file_changes(raw: Any, key: str) -> list[FileChange] | ParseFailure:
    if raw is None:
        return []
    if not isinstance(raw, list):
        return ParseFailure(f"'{key}' must be a list")
    changes: list[FileChange] = []
    for i, entry in enumerate(raw, 1):
        if not isinstance(entry, dict):
            return ParseFailure(f"{key}[{i}] is not an object")
        path = entry.get("path")
        action = entry.get("action")
        if not isinstance(path, str) or not path:
            return ParseFailure(f"{key}[{i}] has no path")
        if action not in _FILE_ACTIONS:
            return ParseFailure(f"{key}[{i}] has invalid action {action!r}")
        content = entry.get("content")
        diff = entry.get("diff")
        changes.append(
            FileChange(
                path=path,
                action=action,
                content=content if isinstance(content, str) else None,
                diff=diff if isinstance(diff, str) else None,
            )
        )
    return changes


def parse_change_set(text: str, item_id: str, worker_id: str) -> ParseResult[ChangeSet]:
    """Parse a developer's implementation into a pending change set."""
    raw = _decode(text)
    if isinstance(raw, ParseFailure):
        return raw
    if not isinstance(raw, dict):
        return ParseFailure("expected an object")
    if "files" not in raw:
        return ParseFailure("missing 'files'")

    files = _file_changes(raw.get("files"), "files")
    if isinstance(files, ParseFailure):
        return files
    tests = _file_changes(raw.get("tests"), "tests")
    if isinstance(tests, ParseFailure):
        return tests

    summary = raw.get("commitMessage", "")
    if not isinstance(summary, str):
        return ParseFailure("'commitMessage' must be a string")
    return Parsed(
        ChangeSet(
            item_id=item_id,
            worker_id=worker_id,
            files=tuple(files + tests),
            summary=summary,
        )
    )


def _count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return max(0, int(value))


def parse_review(text: str, item_id: str, review_round: int = 1) -> ParseResult[ReviewResult]:
    """Parse a QA verdict into a review result."""
    raw = _decode(text)
    if isinstance(raw, ParseFailure):
        return raw
    if not isinstance(raw, dict):
        return ParseFailure("expected an object")
    approved = raw.get("approved")
    if not isinstance(approved, bool):
        return ParseFailure("'approved' must be true or false")
    results = raw.get("testResults")
    if not isinstance(results, dict):
        return ParseFailure("missing 'testResults' object")
    passed = _count(results.get("passed", 0))
    failed = _count(results.get("failed", 0))
    if passed is None or failed is None:
        return ParseFailure("'testResults.passed' and 'testResults.failed' must be numbers")
    coverage = results.get("coverage")
    if coverage is not None and (isinstance(coverage, bool) or not isinstance(coverage, int | float)):
        return ParseFailure("'testResults.coverage' must be a number")
    issues = _str_list(raw.get("issues"))
    if issues is None:
        return ParseFailure("'issues' must be a list of strings")

    return Parsed(
        ReviewResult(
            item_id=item_id,
            passed=passed,
            failed=failed,
            approved=approved,
            failures=tuple(ReviewFailure("QA Review", issue) for issue in issues),
            coverage=float(coverage) if coverage is not None else None,
            round=review_round,
        )
    )


def _work_item(raw: Any, epic_id: str) -> WorkItem | ParseFailure:
    if not isinstance(raw, dict):
        return ParseFailure(f"story in epic {epic_id} is not an object")
    story_id = raw.get("id")
    title = raw.get("title")
    if not isinstance(story_id, str) or not story_id:
        return ParseFailure(f"story in epic {epic_id} has no id")
    if not isinstance(title, str) or not title:
        return ParseFailure(f"story {story_id} has no title")
    criteria = _str_list(raw.get("acceptanceCriteria"))
    deps = _str_list(raw.get("dependencies"))
    if criteria is None:
        return ParseFailure(f"story {story_id}: 'acceptanceCriteria' must be a list of strings")
    if deps is None:
        return ParseFailure(f"story {story_id}: 'dependencies' must be a list of ids")
    description = raw.get("description", "")
    return WorkItem(
        id=story_id,
        title=title,
        description=description if isinstance(description, str) else "",
        acceptance_criteria=tuple(criteria),
        dependencies=tuple(deps),
        status="draft",
        epic_id=epic_id,
    )


def parse_shard(text: str) -> ParseResult[ShardOutcome]:
    """Parse the product owner's epic/story decomposition."""
    raw = _decode(text)
    if isinstance(raw, ParseFailure):
        return raw
    if not isinstance(raw, dict) or not isinstance(raw.get("epics"), list):
        return ParseFailure("expected an object with an 'epics' list")

    epics: list[Epic] = []
    items: list[WorkItem] = []
    for i, raw_epic in enumerate(raw["epics"], 1):
        if not isinstance(raw_epic, dict):
            return ParseFailure(f"epic {i} is not an object")
        epic_id = raw_epic.get("id")
        if not isinstance(epic_id, str) or not epic_id:
            return ParseFailure(f"epic {i} has no id")
        stories = raw_epic.get("stories", [])
        if not isinstance(stories, list):
            return ParseFailure(f"epic {epic_id}: 'stories' must be a list")
        epic_items: list[WorkItem] = []
        for raw_story in stories:
            item = _work_item(raw_story, epic_id)
            if isinstance(item, ParseFailure):
                return item
            epic_items.append(item)
        title = raw_epic.get("title", "")
        description = raw_epic.get("description", "")
        epics.append(
            Epic(
                id=epic_id,
                title=title if isinstance(title, str) else "",
                description=description if isinstance(description, str) else "",
                item_ids=tuple(it.id for it in epic_items),
            )
        )
        items.extend(epic_items)

    logger.debug("Parsed %d epics with %d stories", len(epics), len(items))
    return Parsed(ShardOutcome(epics=tuple(epics), items=tuple(items)))
