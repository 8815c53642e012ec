"""Tests for parsing generated text into domain values."""

from __future__ import annotations

import json

import pytest

from hiveflow.models import WorkItem
from hiveflow.parsing import (
    Parsed,
    ParseFailure,
    extract_json,
    parse_change_set,
    parse_draft,
    parse_review,
    parse_shard,
)


class TestExtractJson:
    def test_bare(self) -> None:
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_fenced(self) -> None:
        assert extract_json('Here you go:\n```json\n{"a": [1, 2]}\n```\nThanks') == {"a": [1, 2]}

    def test_embedded_in_prose(self) -> None:
        assert extract_json('Sure! {"approved": true} Hope that helps.') == {"approved": True}

    def test_nothing_decodes(self) -> None:
        with pytest.raises(ValueError, match="no JSON payload"):
            extract_json("no json here")


class TestParseDraft:
    def test_tasks_and_hard_dependencies(self, replies) -> None:
        item = WorkItem(id="S-1", title="Sign up", dependencies=("S-0",))
        result = parse_draft(replies.draft("S-1", hard=["S-9"]), item)
        assert isinstance(result, Parsed)
        drafted = result.value.item
        assert drafted.status == "ready"
        assert drafted.dependencies == ("S-0",)
        assert [t.description for t in drafted.tasks] == ["Implement S-1"]
        assert result.value.generated_dependencies == ("S-9",)

    def test_missing_task_ids_are_numbered(self) -> None:
        reply = json.dumps({"story": {"tasks": [{"description": "x"}, {"description": "y"}]}})
        result = parse_draft(reply, WorkItem(id="S-1", title="t"))
        assert isinstance(result, Parsed)
        assert [t.id for t in result.value.item.tasks] == ["S-1-T1", "S-1-T2"]

    @pytest.mark.parametrize(
        "reply",
        [
            "not json",
            '{"tasks": []}',
            '{"story": {"tasks": "write code"}}',
            '{"story": {"tasks": [{"id": "1"}]}}',
            '{"story": {"hardDependencies": "S-0"}}',
        ],
    )
    def test_malformed(self, reply: str) -> None:
        assert isinstance(parse_draft(reply, WorkItem(id="S-1", title="t")), ParseFailure)


class TestParseChangeSet:
    def test_files_and_tests_are_merged(self, replies) -> None:
        result = parse_change_set(replies.dev("S-1"), "S-1", "dev-1")
        assert isinstance(result, Parsed)
        cs = result.value
        assert [f.path for f in cs.files] == ["src/s-1.py", "tests/test_s-1.py"]
        assert cs.summary == "feat: S-1"
        assert cs.status == "pending"
        assert cs.worker_id == "dev-1"

    def test_missing_files(self) -> None:
        result = parse_change_set('{"commitMessage": "x"}', "S-1", "dev-1")
        assert result == ParseFailure("missing 'files'")

    def test_invalid_action(self) -> None:
        reply = json.dumps({"files": [{"path": "a.py", "action": "rename"}]})
        result = parse_change_set(reply, "S-1", "dev-1")
        assert isinstance(result, ParseFailure)
        assert "rename" in result.reason


class TestParseReview:
    def test_verdict(self, replies) -> None:
        result = parse_review(replies.review(approved=False, failed=2, issues=["null deref"]), "S-1", 3)
        assert isinstance(result, Parsed)
        review = result.value
        assert (review.passed, review.failed, review.approved, review.round) == (5, 2, False, 3)
        assert review.coverage == 90.0
        assert review.failures[0].detail == "null deref"

    def test_negative_counts_clamp_to_zero(self) -> None:
        reply = json.dumps({"approved": True, "testResults": {"passed": 1, "failed": -3}})
        result = parse_review(reply, "S-1")
        assert isinstance(result, Parsed)
        assert result.value.failed == 0

    @pytest.mark.parametrize(
        "reply",
        [
            '{"approved": "yes", "testResults": {}}',
            '{"approved": true}',
            '{"approved": true, "testResults": {"failed": "two"}}',
            '{"approved": true, "testResults": {}, "issues": [1]}',
        ],
    )
    def test_malformed(self, reply: str) -> None:
        assert isinstance(parse_review(reply, "S-1"), ParseFailure)


class TestParseShard:
    def test_epics_and_items(self, replies) -> None:
        result = parse_shard(replies.shard())
        assert isinstance(result, Parsed)
        assert [e.id for e in result.value.epics] == ["EPIC-001"]
        first, second = result.value.items
        assert first.acceptance_criteria == ("Email is verified",)
        assert first.description == "As a user I want an account"
        assert second.dependencies == ("EPIC-001-001",)

    def test_story_without_title(self, replies) -> None:
        result = parse_shard(replies.shard([{"id": "S-1"}]))
        assert result == ParseFailure("story S-1 has no title")

    def test_no_epics(self) -> None:
        assert isinstance(parse_shard('{"stories": []}'), ParseFailure)
