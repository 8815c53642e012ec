"""Content generators: single-shot and chunked text generation with cancellation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from hiveflow.errors import GenerationCancelled, GenerationError

if TYPE_CHECKING:
    from hiveflow.config import GeneratorConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_END_OF_STREAM = object()


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call sampling options. ``temperature=None`` keeps the generator default."""

    temperature: float | None = None
    max_output_tokens: int | None = None
    stop_sequences: tuple[str, ...] = field(default_factory=tuple)


class ContentGenerator(ABC):
    """Turns a system prompt and a user prompt into text.

    Subclasses implement :meth:`_generate` (and optionally :meth:`_stream`);
    the public methods add cancellation and map backend failures onto
    :class:`GenerationError` so phases only ever handle one error type.
    """

    @abstractmethod
    async def _generate(self, system_prompt: str, user_prompt: str, options: GenerationOptions) -> str:
        ...

    async def _stream(
        self, system_prompt: str, user_prompt: str, options: GenerationOptions
    ) -> AsyncIterator[str]:
        yield await self._generate(system_prompt, user_prompt, options)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: GenerationOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Generate the full text, aborting promptly when *cancel_event* is set."""
        opts = options or GenerationOptions()
        return await _cancellable(self._generate(system_prompt, user_prompt, opts), cancel_event)

    async def generate_stream(
        self,
        system_prompt: str,
        user_prompt: str,
        options: GenerationOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """Yield text chunks as they arrive."""
        opts = options or GenerationOptions()
        stream = self._stream(system_prompt, user_prompt, opts)
        try:
            while True:
                chunk = await _cancellable(_next_chunk(stream), cancel_event)
                if chunk is _END_OF_STREAM:
                    return
                yield chunk
        finally:
            await stream.aclose()  # type: ignore[attr-defined]


async def collect_stream(
    generator: ContentGenerator,
    system_prompt: str,
    user_prompt: str,
    options: GenerationOptions | None = None,
    cancel_event: asyncio.Event | None = None,
) -> str:
    """Assemble a chunked generation into one string."""
    parts: list[str] = []
    async for chunk in generator.generate_stream(system_prompt, user_prompt, options, cancel_event):
        parts.append(chunk)
    return "".join(parts)


async def _next_chunk(stream: AsyncIterator[str]) -> object:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END_OF_STREAM


async def _cancellable(awaitable: Awaitable[T], cancel_event: asyncio.Event | None) -> T:
    """Await *awaitable* unless *cancel_event* fires first."""
    if cancel_event is not None and cancel_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise GenerationCancelled("Generation cancelled before it started")

    task = asyncio.ensure_future(awaitable)
    if cancel_event is None:
        return await _unwrap(task)

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
    if task in done:
        return await _unwrap(task)

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await task
    raise GenerationCancelled("Generation cancelled")


async def _unwrap(task: asyncio.Future[T]) -> T:
    try:
        return await task
    except (GenerationError, asyncio.CancelledError):
        raise
    except Exception as e:
        raise GenerationError(f"{type(e).__name__}: {e}") from e


class LLMContentGenerator(ContentGenerator):
    """Generator backed by a LangChain chat model (LiteLLM)."""

    def __init__(self, model_name: str, temperature: float = 0.0, api_base: str | None = None) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.api_base = api_base

    def _llm(self, options: GenerationOptions):  # type: ignore[no-untyped-def]
        from hiveflow.llm.factory import get_llm

        temperature = self.temperature if options.temperature is None else options.temperature
        return get_llm(self.model_name, temperature, self.api_base)

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> list:
        from langchain_core.messages import HumanMessage, SystemMessage

        return [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]

    @staticmethod
    def _call_kwargs(options: GenerationOptions) -> dict[str, object]:
        kwargs: dict[str, object] = {}
        if options.stop_sequences:
            kwargs["stop"] = list(options.stop_sequences)
        if options.max_output_tokens:
            kwargs["max_tokens"] = options.max_output_tokens
        return kwargs

    async def _generate(self, system_prompt: str, user_prompt: str, options: GenerationOptions) -> str:
        llm = self._llm(options)
        response = await llm.ainvoke(self._messages(system_prompt, user_prompt), **self._call_kwargs(options))
        return _content_text(response.content)

    async def _stream(
        self, system_prompt: str, user_prompt: str, options: GenerationOptions
    ) -> AsyncIterator[str]:
        llm = self._llm(options)
        async for chunk in llm.astream(self._messages(system_prompt, user_prompt), **self._call_kwargs(options)):
            text = _content_text(chunk.content)
            if text:
                yield text


def _content_text(content: object) -> str:
    """Flatten LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return str(content)


def create_generator(config: GeneratorConfig) -> ContentGenerator:
    """Build the generator a pipeline instance will use."""
    logger.debug("Creating generator for model %s", config.model)
    return LLMContentGenerator(
        model_name=config.model,
        temperature=config.temperature,
        api_base=config.api_base,
    )
