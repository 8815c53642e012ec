"""LLM factory: returns a LangChain BaseChatModel backed by LiteLLM."""

from __future__ import annotations

from functools import lru_cache

from langchain_core.language_models import BaseChatModel


@lru_cache(maxsize=32)
def get_llm(
    model_name: str = "claude-sonnet-4-6",
    temperature: float = 0.0,
    api_base: str | None = None,
) -> BaseChatModel:
    """Return a cached LangChain chat model via LiteLLM.

    Supports any model string that LiteLLM understands:
      - "claude-sonnet-4-6" / "claude-opus-4-6"
      - "gpt-4o" / "gpt-4o-mini"
      - "ollama/llama3.2" (pair with ``api_base`` for a local server)
      - etc.
    """
    from langchain_litellm import ChatLiteLLM

    kwargs: dict[str, object] = {"model": model_name, "temperature": temperature}
    if api_base:
        kwargs["api_base"] = api_base
    return ChatLiteLLM(**kwargs)  # type: ignore[return-value]
