"""Shared LLM client factory and response parsing helpers.

Both collaborators (level content and response evaluation) import from
here instead of constructing their own client, so model selection,
temperature and timeout stay consistent.
"""

from __future__ import annotations

import json
from typing import Any

from langchain_openai import ChatOpenAI

import src.settings as settings


def get_chat_llm(
    *,
    temperature: float | None = None,
    request_timeout: int | None = None,
) -> ChatOpenAI:
    """Return a ChatOpenAI instance that answers in JSON mode."""
    return ChatOpenAI(
        model=settings.LLM_MODEL_NAME,
        temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
        request_timeout=settings.REQUEST_TIMEOUT if request_timeout is None else request_timeout,
        model_kwargs={"response_format": {"type": "json_object"}},
    )


def response_text(content: Any) -> str:
    """Normalize LangChain message content into a text string."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: keep the text parts in order.
        parts = [
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        ]
        return "".join(parts)
    return json.dumps(content)


def parse_json(raw: str) -> dict[str, Any]:
    """Parse a JSON object from model output, stripping markdown fences if needed."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1].rsplit("```", 1)[0]
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed
