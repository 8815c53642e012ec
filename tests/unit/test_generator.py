"""Tests for content generators: cancellation, error mapping, LLM adapter."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest import mock

import pytest

from hiveflow.config import GeneratorConfig
from hiveflow.errors import GenerationCancelled, GenerationError
from hiveflow.llm.generator import (
    ContentGenerator,
    GenerationOptions,
    LLMContentGenerator,
    _content_text,
    collect_stream,
    create_generator,
)


class Echo(ContentGenerator):
    def __init__(self, delay: float = 0.0, error: Exception | None = None) -> None:
        self.delay = delay
        self.error = error
        self.started = 0

    async def _generate(self, system_prompt: str, user_prompt: str, options: GenerationOptions) -> str:
        self.started += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return f"{system_prompt}|{user_prompt}"


class Chunked(Echo):
    async def _stream(self, system_prompt, user_prompt, options):
        for word in user_prompt.split():
            await asyncio.sleep(self.delay)
            yield word + " "


# ── Single-shot ───────────────────────────────────────────────


class TestGenerate:
    @pytest.mark.asyncio
    async def test_returns_text(self) -> None:
        assert await Echo().generate("sys", "user") == "sys|user"

    @pytest.mark.asyncio
    async def test_backend_errors_become_generation_errors(self) -> None:
        with pytest.raises(GenerationError, match="RuntimeError: rate limited"):
            await Echo(error=RuntimeError("rate limited")).generate("s", "u")

    @pytest.mark.asyncio
    async def test_generation_errors_pass_through(self) -> None:
        err = GenerationError("quota")
        with pytest.raises(GenerationError) as exc_info:
            await Echo(error=err).generate("s", "u")
        assert exc_info.value is err

    @pytest.mark.asyncio
    async def test_cancelled_before_start_never_calls_backend(self) -> None:
        gen = Echo()
        event = asyncio.Event()
        event.set()
        with pytest.raises(GenerationCancelled, match="before it started"):
            await gen.generate("s", "u", cancel_event=event)
        assert gen.started == 0

    @pytest.mark.asyncio
    async def test_cancel_mid_flight(self) -> None:
        event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, event.set)
        with pytest.raises(GenerationCancelled):
            await Echo(delay=5).generate("s", "u", cancel_event=event)

    @pytest.mark.asyncio
    async def test_unset_event_does_not_interfere(self) -> None:
        assert await Echo(delay=0.01).generate("s", "u", cancel_event=asyncio.Event()) == "s|u"


# ── Streaming ─────────────────────────────────────────────────


class TestStream:
    @pytest.mark.asyncio
    async def test_default_stream_is_one_chunk(self) -> None:
        chunks = [c async for c in Echo().generate_stream("s", "u")]
        assert chunks == ["s|u"]

    @pytest.mark.asyncio
    async def test_collect_stream_joins_chunks(self) -> None:
        assert await collect_stream(Chunked(), "s", "a b c") == "a b c "

    @pytest.mark.asyncio
    async def test_cancel_stops_stream(self) -> None:
        event = asyncio.Event()
        received = []
        with pytest.raises(GenerationCancelled):
            async for chunk in Chunked(delay=0.01).generate_stream("s", "a b c d e f", cancel_event=event):
                received.append(chunk)
                if len(received) == 2:
                    event.set()
        assert received == ["a ", "b "]


# ── LLM adapter ───────────────────────────────────────────────


class TestLLMContentGenerator:
    @pytest.mark.asyncio
    async def test_invokes_chat_model(self) -> None:
        llm = mock.MagicMock()
        llm.ainvoke = mock.AsyncMock(return_value=SimpleNamespace(content="hello"))
        gen = LLMContentGenerator("gpt-4o", temperature=0.3)

        with mock.patch("hiveflow.llm.factory.get_llm", return_value=llm) as get_llm:
            text = await gen.generate("sys", "user", GenerationOptions(temperature=0.7, max_output_tokens=100))

        assert text == "hello"
        get_llm.assert_called_once_with("gpt-4o", 0.7, None)
        messages = llm.ainvoke.call_args.args[0]
        assert [m.content for m in messages] == ["sys", "user"]
        assert llm.ainvoke.call_args.kwargs == {"max_tokens": 100}

    @pytest.mark.asyncio
    async def test_default_temperature_and_stop(self) -> None:
        llm = mock.MagicMock()
        llm.ainvoke = mock.AsyncMock(return_value=SimpleNamespace(content=[{"type": "text", "text": "ok"}]))
        gen = LLMContentGenerator("ollama/llama3.2", temperature=0.1, api_base="http://localhost:11434")

        with mock.patch("hiveflow.llm.factory.get_llm", return_value=llm) as get_llm:
            assert await gen.generate("s", "u", GenerationOptions(stop_sequences=("END",))) == "ok"

        get_llm.assert_called_once_with("ollama/llama3.2", 0.1, "http://localhost:11434")
        assert llm.ainvoke.call_args.kwargs == {"stop": ["END"]}

    @pytest.mark.asyncio
    async def test_backend_failure(self) -> None:
        llm = mock.MagicMock()
        llm.ainvoke = mock.AsyncMock(side_effect=ConnectionError("refused"))
        with mock.patch("hiveflow.llm.factory.get_llm", return_value=llm):
            with pytest.raises(GenerationError, match="ConnectionError"):
                await LLMContentGenerator("gpt-4o").generate("s", "u")

    def test_create_generator(self) -> None:
        gen = create_generator(GeneratorConfig(model="gpt-4o-mini", temperature=0.2))
        assert isinstance(gen, LLMContentGenerator)
        assert (gen.model_name, gen.temperature, gen.api_base) == ("gpt-4o-mini", 0.2, None)


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("plain", "plain"),
        (["a", {"type": "text", "text": "b"}, {"type": "image"}], "ab"),
        (42, "42"),
    ],
)
def test_content_text(content: object, expected: str) -> None:
    assert _content_text(content) == expected
