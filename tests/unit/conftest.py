"""Shared fixtures: scripted content generators standing in for the LLM."""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from types import SimpleNamespace

import pytest

from hiveflow.errors import GenerationError
from hiveflow.llm.generator import ContentGenerator, GenerationOptions
from hiveflow.personas import Role, get_persona

_DRAFT_ID = re.compile(r"^ID: (\S+)$", re.MULTILINE)
_STORY_ID = re.compile(r"^STORY (\S+):", re.MULTILINE)


def _speaker(system_prompt: str) -> Role:
    for role in Role:
        if system_prompt.startswith(f"You are {get_persona(role).name},"):
            return role
    raise AssertionError("unrecognised system prompt")


def draft_reply(item_id: str, hard: list[str] | None = None) -> str:
    return json.dumps(
        {
            "story": {
                "id": item_id,
                "tasks": [{"id": f"{item_id}-1", "description": f"Implement {item_id}"}],
                "hardDependencies": hard or [],
            }
        }
    )


def dev_reply(item_id: str) -> str:
    return json.dumps(
        {
            "files": [{"path": f"src/{item_id.lower()}.py", "action": "create", "content": "pass\n"}],
            "tests": [{"path": f"tests/test_{item_id.lower()}.py", "action": "create", "content": "pass\n"}],
            "commitMessage": f"feat: {item_id}",
        }
    )


def review_reply(approved: bool = True, failed: int = 0, issues: list[str] | None = None) -> str:
    return json.dumps(
        {
            "approved": approved,
            "testResults": {"passed": 5, "failed": failed, "coverage": 90},
            "issues": issues or [],
        }
    )


Handler = Callable[[str], str]


class SwarmStub(ContentGenerator):
    """Routes each call by persona and work item id.

    ``draft``, ``dev`` and ``review`` take the item id and return text or
    raise; ``delays`` maps item ids to seconds slept before answering.
    """

    def __init__(
        self,
        draft: Handler | None = None,
        dev: Handler | None = None,
        review: Handler | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.draft = draft or draft_reply
        self.dev = dev or dev_reply
        self.review = review or (lambda _id: review_reply())
        self.delays = delays or {}
        self.calls: list[tuple[str, str]] = []
        self.options: list[GenerationOptions] = []

    async def _generate(self, system_prompt: str, user_prompt: str, options: GenerationOptions) -> str:
        role = _speaker(system_prompt)
        if role is Role.SM:
            kind, match = "draft", _DRAFT_ID.search(user_prompt)
        elif role is Role.DEV:
            kind, match = "dev", _STORY_ID.search(user_prompt)
        elif role is Role.QA:
            kind, match = "review", _STORY_ID.search(user_prompt)
        else:
            raise AssertionError(f"unexpected persona {role}")
        assert match is not None
        item_id = match.group(1)
        self.calls.append((kind, item_id))
        self.options.append(options)
        if item_id in self.delays:
            await asyncio.sleep(self.delays[item_id])
        return getattr(self, kind)(item_id)


def shard_reply(stories: list[dict] | None = None) -> str:
    stories = stories if stories is not None else [
        {
            "id": "EPIC-001-001",
            "title": "Sign up",
            "description": "As a user I want an account",
            "acceptanceCriteria": ["Email is verified"],
            "dependencies": [],
        },
        {
            "id": "EPIC-001-002",
            "title": "Log in",
            "acceptanceCriteria": ["Wrong password is rejected"],
            "dependencies": ["EPIC-001-001"],
        },
    ]
    return json.dumps({"epics": [{"id": "EPIC-001", "title": "Accounts", "stories": stories}]})


class PlanningStub(ContentGenerator):
    """Answers planning phases in order.

    ``validations`` are consumed one per validate phase (the last one
    repeats); phases listed in ``fail`` raise GenerationError.
    """

    def __init__(
        self,
        validations: list[str] | None = None,
        shard: str | None = None,
        fail: set[str] | None = None,
    ) -> None:
        self.validations = list(validations or ["VALIDATED"])
        self.shard = shard if shard is not None else shard_reply()
        self.fail = fail or set()
        self.phases: list[str] = []
        self.prompts: dict[str, list[str]] = {}

    def _phase(self, system_prompt: str, user_prompt: str) -> str:
        role = _speaker(system_prompt)
        if role is Role.PO:
            return "validate" if user_prompt.startswith("Review these project artifacts") else "shard"
        return {
            Role.ANALYST: "brief",
            Role.PM: "requirements",
            Role.UX: "ux",
            Role.ARCHITECT: "architecture",
        }[role]

    async def _generate(self, system_prompt: str, user_prompt: str, options: GenerationOptions) -> str:
        phase = self._phase(system_prompt, user_prompt)
        self.phases.append(phase)
        self.prompts.setdefault(phase, []).append(user_prompt)
        if phase in self.fail:
            raise GenerationError(f"{phase} backend down")
        if phase == "validate":
            return self.validations.pop(0) if len(self.validations) > 1 else self.validations[0]
        if phase == "shard":
            return self.shard
        return f"# {phase.title()}\n\nGenerated {phase} document."


@pytest.fixture
def swarm_stub() -> type[SwarmStub]:
    return SwarmStub


@pytest.fixture
def planning_stub() -> type[PlanningStub]:
    return PlanningStub


@pytest.fixture
def replies() -> SimpleNamespace:
    """Canned model replies: ``draft``, ``dev``, ``review`` and ``shard``."""
    return SimpleNamespace(draft=draft_reply, dev=dev_reply, review=review_reply, shard=shard_reply)
