"""Read and write work-item backlogs (YAML or JSON)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from hiveflow.errors import BacklogError
from hiveflow.models import Task, WorkItem

logger = logging.getLogger(__name__)


def load_backlog(path: str | Path) -> list[WorkItem]:
    """Load work items from *path*.

    The document is either a list of stories, a mapping with ``stories``,
    or a mapping with ``epics``, each carrying its own ``stories``. Story
    keys follow the sharding output (``acceptanceCriteria``,
    ``dependencies``); snake_case spellings are accepted too.
    """
    p = Path(path)
    if not p.exists():
        raise BacklogError(f"Backlog file not found: {p}")
    text = p.read_text(encoding="utf-8")
    try:
        data = json.loads(text) if p.suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise BacklogError(f"Cannot parse {p}: {e}") from e

    items: list[WorkItem] = []
    if isinstance(data, list):
        items = [_item(raw, None) for raw in data]
    elif isinstance(data, dict) and isinstance(data.get("stories"), list):
        items = [_item(raw, None) for raw in data["stories"]]
    elif isinstance(data, dict) and isinstance(data.get("epics"), list):
        for epic in data["epics"]:
            if not isinstance(epic, dict):
                raise BacklogError("Each epic must be a mapping")
            epic_id = epic.get("id")
            stories = epic.get("stories", [])
            if not isinstance(stories, list):
                raise BacklogError(f"Epic {epic_id}: 'stories' must be a list")
            items.extend(_item(raw, epic_id) for raw in stories)
    else:
        raise BacklogError(f"{p} must hold a list of stories, 'stories' or 'epics'")

    logger.info("Loaded %d work item(s) from %s", len(items), p)
    return items


def _strings(raw: dict[str, Any], *keys: str) -> tuple[str, ...]:
    for key in keys:
        if key in raw:
            value = raw[key] or []
            if not isinstance(value, list):
                raise BacklogError(f"Story {raw.get('id')}: '{key}' must be a list")
            return tuple(str(v) for v in value)
    return ()


def _item(raw: Any, epic_id: str | None) -> WorkItem:
    if not isinstance(raw, dict):
        raise BacklogError(f"Story entries must be mappings, got {type(raw).__name__}")
    item_id = raw.get("id")
    title = raw.get("title")
    if not item_id:
        raise BacklogError(f"Story without an id: {raw!r}")
    if not title:
        raise BacklogError(f"Story {item_id} has no title")

    tasks = []
    for i, task in enumerate(raw.get("tasks") or [], 1):
        if isinstance(task, str):
            tasks.append(Task(id=f"{item_id}-T{i}", description=task))
        elif isinstance(task, dict) and task.get("description"):
            tasks.append(Task(id=str(task.get("id") or f"{item_id}-T{i}"), description=str(task["description"])))
        else:
            raise BacklogError(f"Story {item_id}: task {i} has no description")

    return WorkItem(
        id=str(item_id),
        title=str(title),
        description=str(raw.get("description") or ""),
        acceptance_criteria=_strings(raw, "acceptanceCriteria", "acceptance_criteria"),
        tasks=tuple(tasks),
        dependencies=_strings(raw, "dependencies"),
        epic_id=str(raw.get("epicId") or raw.get("epic_id") or epic_id or "") or None,
    )


def dump_backlog(items: list[WorkItem], path: str | Path) -> Path:
    """Write *items* as a YAML ``stories`` document that :func:`load_backlog` reads back."""
    stories = []
    for item in items:
        story: dict[str, Any] = {
            "id": item.id,
            "title": item.title,
            "description": item.description,
            "acceptanceCriteria": list(item.acceptance_criteria),
            "dependencies": list(item.dependencies),
            "tasks": [{"id": t.id, "description": t.description} for t in item.tasks],
        }
        if item.epic_id:
            story["epicId"] = item.epic_id
        stories.append(story)

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        yaml.safe_dump({"stories": stories}, f, sort_keys=False, allow_unicode=True)
    logger.info("Wrote %d work item(s) to %s", len(items), p)
    return p
