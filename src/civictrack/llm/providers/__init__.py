"""LLM backends usable by the category classifier.

``CIVICTRACK_LLM_PROVIDER`` picks the key. vLLM serves the OpenAI wire
format, so it shares that client.
"""

from __future__ import annotations

from civictrack.llm.providers.ollama import OllamaClient
from civictrack.llm.providers.openai_compat import OpenAICompatClient

PROVIDER_REGISTRY = {
    "ollama": OllamaClient,
    "openai": OpenAICompatClient,
    "vllm": OpenAICompatClient,
}
