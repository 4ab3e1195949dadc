from __future__ import annotations

import logging
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from .config import LLMCfg
from .errors import LLMInvocationError

log = logging.getLogger("tradeguide")


class LLMClient:
    """Thin wrapper around an OpenAI-compatible chat completion endpoint (Groq by default)."""

    def __init__(self, cfg: LLMCfg, client: Optional[OpenAI] = None) -> None:
        self.cfg = cfg
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.cfg.api_key:
                raise LLMInvocationError("no LLM API key configured")
            self._client = OpenAI(api_key=self.cfg.api_key, base_url=self.cfg.base_url,
                                  timeout=self.cfg.timeout_sec, max_retries=1)
        return self._client

    def complete(self, messages: List[Dict[str, str]]) -> str:
        client = self._get_client()
        try:
            completion = client.chat.completions.create(
                model=self.cfg.model,
                messages=messages,
                temperature=self.cfg.temperature,
                max_tokens=self.cfg.max_tokens,
            )
        except OpenAIError as e:
            raise LLMInvocationError(f"completion request failed: {e}") from e

        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise LLMInvocationError("completion returned no choices") from e
        if not content:
            raise LLMInvocationError("completion returned empty content")
        return content
