"""Tests for the persona registry and system prompts."""

from __future__ import annotations

import pytest

from hiveflow.personas import PARALLEL_SM_ENHANCEMENT, Role, get_agent_prompt, get_persona


def test_every_role_has_a_persona() -> None:
    names = {get_persona(role).name for role in Role}
    assert len(names) == len(Role)


def test_lookup_by_string() -> None:
    assert get_persona("qa") is get_persona(Role.QA)


def test_unknown_role() -> None:
    with pytest.raises(KeyError, match="Unknown role"):
        get_persona("janitor")


def test_system_prompt_layout() -> None:
    persona = get_persona(Role.ARCHITECT)
    prompt = get_agent_prompt(Role.ARCHITECT)
    assert prompt.startswith(f"You are {persona.name}, a {persona.title}.")
    for principle in persona.core_principles:
        assert f"- {principle}" in prompt
    assert prompt.endswith("Apply your core principles to every interaction and decision.")


def test_parallel_mode_only_changes_scrum_master() -> None:
    assert PARALLEL_SM_ENHANCEMENT in get_agent_prompt(Role.SM, parallelization_mode=True)
    assert PARALLEL_SM_ENHANCEMENT not in get_agent_prompt(Role.SM)
    assert get_agent_prompt(Role.DEV, parallelization_mode=True) == get_agent_prompt(Role.DEV)
