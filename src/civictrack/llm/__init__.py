"""Language model access for category suggestion."""

from civictrack.llm.client import LLMClient, create_llm_client
from civictrack.llm.health import check_llm_health

__all__ = ["LLMClient", "check_llm_health", "create_llm_client"]
