"""Reasoning provider backed by an OpenAI-compatible chat model."""

from __future__ import annotations

from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from fieldplan.shared.exceptions import ToolError

SYSTEM_PROMPT = (
    "You are a dispatch assistant for an independent field-service technician. "
    "Given a prioritized job schedule, explain in a few short bullet points why the "
    "jobs are ordered this way, call out emergencies, VIP clients and anything that "
    "did not fit the day. Do not invent jobs or times."
)


class LLMReasoningProvider:
    def __init__(self, client: AsyncOpenAI, model: str, *, max_tokens: int = 400):
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    async def explain(self, context: str) -> str:
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": context},
                ],
                temperature=0.2,
                max_tokens=self._max_tokens,
            )
        except OpenAIError as exc:
            raise ToolError("reasoning", f"{type(exc).__name__}: {exc}") from None

        text: Optional[str] = resp.choices[0].message.content if resp.choices else None
        if not text or not text.strip():
            raise ToolError("reasoning", "empty completion")
        return text.strip()


__all__ = ["LLMReasoningProvider", "SYSTEM_PROMPT"]
