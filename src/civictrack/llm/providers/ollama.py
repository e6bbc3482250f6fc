"""Ollama ``/api/generate`` provider."""

from __future__ import annotations

from typing import Any

from civictrack.llm.client import LLMClient


class OllamaClient(LLMClient):
    health_path = "/api/tags"

    def _request(self, prompt: str, system_prompt: str | None) -> tuple[str, dict[str, Any]]:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }
        if system_prompt is not None:
            payload["system"] = system_prompt
        return "/api/generate", payload

    def _extract(self, data: dict[str, Any]) -> str:
        return data["response"]
