"""Content-generation service: the only place hiveflow talks to a model."""

from __future__ import annotations

from hiveflow.llm.generator import (
    ContentGenerator,
    GenerationOptions,
    LLMContentGenerator,
    collect_stream,
    create_generator,
)

__all__ = [
    "ContentGenerator",
    "GenerationOptions",
    "LLMContentGenerator",
    "collect_stream",
    "create_generator",
]
