"""LLM factory: decide from environment whether a chat model is available.

Environment variables, in order of precedence:
  OPENAI_API_KEY  -> OpenAI
  LLM_API_KEY     -> any OpenAI-compatible endpoint (set LLM_BASE_URL)

Optional:
  LLM_MODEL    - model name (default gpt-4o-mini)
  LLM_BASE_URL - custom base url
"""

from __future__ import annotations

import os
from typing import Optional

from openai import AsyncOpenAI

_DEFAULT_MODEL = "gpt-4o-mini"


def _resolve_config() -> tuple[str, str, str] | None:
    """Return (api_key, base_url, model) or None."""
    oai_key = os.getenv("OPENAI_API_KEY")
    if oai_key:
        return (
            oai_key,
            os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"),
            os.getenv("LLM_MODEL", _DEFAULT_MODEL),
        )

    llm_key = os.getenv("LLM_API_KEY")
    if llm_key:
        return (
            llm_key,
            os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"),
            os.getenv("LLM_MODEL", _DEFAULT_MODEL),
        )

    return None


_llm_instance: Optional[AsyncOpenAI] = None
_llm_model: str = _DEFAULT_MODEL
_llm_resolved: bool = False


def get_llm() -> tuple[Optional[AsyncOpenAI], str]:
    """Return (client, model); client is None when no key is configured."""
    global _llm_instance, _llm_model, _llm_resolved
    if _llm_resolved:
        return _llm_instance, _llm_model

    cfg = _resolve_config()
    if cfg is not None:
        api_key, base_url, model = cfg
        _llm_instance = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        _llm_model = model
    _llm_resolved = True
    return _llm_instance, _llm_model


def reset_llm() -> None:
    """Drop the cached client (tests)."""
    global _llm_instance, _llm_model, _llm_resolved
    _llm_instance = None
    _llm_model = _DEFAULT_MODEL
    _llm_resolved = False


__all__ = ["get_llm", "reset_llm"]
