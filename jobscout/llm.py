"""Thin JSON-oriented wrapper around an OpenAI-compatible chat endpoint (Groq by default)."""
from __future__ import annotations

import json
import re
from typing import Any

import openai
from openai import OpenAI

from jobscout.config import DEFAULT_MODEL, GROQ_BASE_URL, AppConfig
from jobscout.errors import InvalidResponse, RateLimited
from jobscout.log import get_logger

log = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_payload(raw: str) -> Any:
    """Decode the JSON object or array in an LLM reply.

    Tolerates markdown code fences and chatter around the payload.
    """
    text = _FENCE_RE.sub("", (raw or "").strip()).strip()
    if not text:
        raise InvalidResponse("Empty response from LLM")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # outermost payload first: whichever bracket opens earliest
    pairs = sorted((("{", "}"), ("[", "]")), key=lambda p: (text.find(p[0]) % (len(text) + 1)))
    for open_ch, close_ch in pairs:
        start = text.find(open_ch)
        end = text.rfind(close_ch) + 1
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end])
            except json.JSONDecodeError:
                continue
    raise InvalidResponse(f"LLM did not return valid JSON: {text[:120]!r}")


class LLMClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = GROQ_BASE_URL,
        client: Any = None,
    ) -> None:
        self.model = model
        self._client = client or OpenAI(api_key=api_key, base_url=base_url)

    @classmethod
    def from_config(cls, config: AppConfig) -> "LLMClient":
        return cls(config.groq_api_key, model=config.llm_model, base_url=config.llm_base_url)

    def complete(self, prompt: str, *, max_tokens: int = 1500, temperature: float = 0.2) -> str:
        try:
            r = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as exc:
            raise RateLimited(f"429 from LLM provider: {exc}") from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 429:
                raise RateLimited(f"429 from LLM provider: {exc}") from exc
            raise
        return (r.choices[0].message.content or "").strip()

    def complete_json(self, prompt: str, *, max_tokens: int = 1500, temperature: float = 0.2) -> Any:
        raw = self.complete(prompt, max_tokens=max_tokens, temperature=temperature)
        return parse_json_payload(raw)
