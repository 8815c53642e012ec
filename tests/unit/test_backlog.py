"""Tests for backlog files."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hiveflow.backlog import dump_backlog, load_backlog
from hiveflow.errors import BacklogError
from hiveflow.models import Task, WorkItem


class TestLoadBacklog:
    def test_list_form(self, tmp_path: Path) -> None:
        path = tmp_path / "backlog.yml"
        path.write_text(
            "- id: S-1\n  title: Sign up\n  tasks: [Create form, Store user]\n"
            "- id: S-2\n  title: Log in\n  dependencies: [S-1]\n  acceptance_criteria: [Rejects bad password]\n"
        )
        first, second = load_backlog(path)
        assert first.tasks == (Task("S-1-T1", "Create form"), Task("S-1-T2", "Store user"))
        assert first.status == "draft"
        assert second.dependencies == ("S-1",)
        assert second.acceptance_criteria == ("Rejects bad password",)
        assert second.epic_id is None

    def test_stories_form_json(self, tmp_path: Path) -> None:
        path = tmp_path / "backlog.json"
        path.write_text(
            json.dumps(
                {
                    "stories": [
                        {
                            "id": "S-1",
                            "title": "Sign up",
                            "acceptanceCriteria": ["Email verified"],
                            "tasks": [{"id": "T-9", "description": "Form"}],
                            "epicId": "E-1",
                        }
                    ]
                }
            )
        )
        (item,) = load_backlog(path)
        assert item.acceptance_criteria == ("Email verified",)
        assert item.tasks == (Task("T-9", "Form"),)
        assert item.epic_id == "E-1"

    def test_epics_form(self, tmp_path: Path) -> None:
        path = tmp_path / "backlog.yaml"
        path.write_text(
            "epics:\n"
            "  - id: E-1\n    stories:\n      - {id: S-1, title: a}\n      - {id: S-2, title: b}\n"
            "  - id: E-2\n    stories:\n      - {id: S-3, title: c}\n"
        )
        items = load_backlog(path)
        assert [(i.id, i.epic_id) for i in items] == [("S-1", "E-1"), ("S-2", "E-1"), ("S-3", "E-2")]

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("just a string\n", "must hold a list"),
            ("- title: no id\n", "without an id"),
            ("- id: S-1\n", "has no title"),
            ("- id: S-1\n  title: t\n  dependencies: S-0\n", "must be a list"),
            ("- id: S-1\n  title: t\n  tasks: [{id: x}]\n", "task 1 has no description"),
            ("- [1, 2]\n", "must be mappings"),
            ("key: [unclosed\n", "Cannot parse"),
        ],
    )
    def test_invalid(self, tmp_path: Path, text: str, message: str) -> None:
        path = tmp_path / "backlog.yml"
        path.write_text(text)
        with pytest.raises(BacklogError, match=message):
            load_backlog(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(BacklogError, match="not found"):
            load_backlog(tmp_path / "nope.yml")


def test_dump_then_load(tmp_path: Path) -> None:
    items = [
        WorkItem(
            id="EPIC-001-001",
            title="Sign up",
            description="As a user",
            acceptance_criteria=("Email verified",),
            tasks=(Task("T-1", "Form"),),
            epic_id="EPIC-001",
        ),
        WorkItem(id="EPIC-001-002", title="Log in", dependencies=("EPIC-001-001",), epic_id="EPIC-001"),
    ]
    path = dump_backlog(items, tmp_path / "out" / "backlog.yml")
    assert load_backlog(path) == items
