"""Provider for servers speaking the OpenAI chat completions API (OpenAI, vLLM)."""

from __future__ import annotations

from typing import Any

from civictrack.llm.client import LLMClient


class OpenAICompatClient(LLMClient):
    health_path = "/v1/models"

    def _headers(self) -> dict[str, str]:
        if self.config.api_key:
            return {"Authorization": f"Bearer {self.config.api_key}"}
        return {}

    def _request(self, prompt: str, system_prompt: str | None) -> tuple[str, dict[str, Any]]:
        messages = [{"role": "user", "content": prompt}]
        if system_prompt is not None:
            messages.insert(0, {"role": "system", "content": system_prompt})
        return "/v1/chat/completions", {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "stream": False,
        }

    def _extract(self, data: dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        return choices[0]["message"]["content"] or ""
