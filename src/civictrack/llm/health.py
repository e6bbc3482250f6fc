"""Reachability probe for the classifier's LLM backend."""

from __future__ import annotations

import time

from civictrack.core.config import LLMConfig
from civictrack.core.types import HealthStatus
from civictrack.llm.client import create_llm_client


async def check_llm_health(config: LLMConfig) -> HealthStatus:
    service = f"llm:{config.provider}"
    details = {"base_url": config.base_url, "model": config.model}
    started = time.perf_counter()
    async with create_llm_client(config) as client:
        healthy = await client.is_available()
    return HealthStatus(
        service=service,
        healthy=healthy,
        latency_ms=round((time.perf_counter() - started) * 1000, 2),
        details=details,
    )
