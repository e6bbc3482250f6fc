"""Base LLM client and provider factory.

The classifier only ever needs one short completion per report, so a
client exposes ``complete()`` and a reachability probe. Providers supply
the wire format; retries and connection handling live here.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Any

import httpx

from civictrack.core.config import LLMConfig

logger = logging.getLogger(__name__)


async def _backoff(attempt: int) -> None:
    await asyncio.sleep(0.5 * 2 ** (attempt - 1))


class LLMClient(abc.ABC):
    """One HTTP connection pool per client; use as an async context manager or call ``close()``."""

    #: GET endpoint that answers 200 when the backend is up.
    health_path: str = "/"

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            headers=self._headers(),
        )

    def _headers(self) -> dict[str, str]:
        return {}

    @abc.abstractmethod
    def _request(self, prompt: str, system_prompt: str | None) -> tuple[str, dict[str, Any]]:
        """Return the POST path and JSON body for a completion."""

    @abc.abstractmethod
    def _extract(self, data: dict[str, Any]) -> str:
        """Pull the completion text out of a response body."""

    async def complete(self, prompt: str, *, system_prompt: str | None = None) -> str:
        path, payload = self._request(prompt, system_prompt)
        return self._extract(await self._post_json(path, payload))

    async def is_available(self) -> bool:
        try:
            resp = await self._http.get(self.health_path)
        except httpx.HTTPError:
            return False
        return resp.status_code == 200

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> LLMClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST, retrying transport errors and 5xx with backoff. 4xx raises at once."""
        attempts = max(1, self.config.max_retries + 1)
        for attempt in range(1, attempts + 1):
            try:
                resp = await self._http.post(path, json=payload)
            except httpx.TransportError as exc:
                if attempt == attempts:
                    raise
                logger.warning("LLM request to %s failed: %s (attempt %d/%d)", path, exc, attempt, attempts)
            else:
                if resp.status_code < 500 or attempt == attempts:
                    resp.raise_for_status()
                    return resp.json()
                logger.warning(
                    "LLM request to %s returned %d (attempt %d/%d)", path, resp.status_code, attempt, attempts
                )
            await _backoff(attempt)
        raise RuntimeError("unreachable")


def create_llm_client(config: LLMConfig) -> LLMClient:
    """Instantiate the provider named by ``config.provider``.

    Raises:
        ValueError: Unknown provider name.
    """
    from civictrack.llm.providers import PROVIDER_REGISTRY

    try:
        cls = PROVIDER_REGISTRY[config.provider.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown LLM provider {config.provider!r}. Available: {', '.join(sorted(PROVIDER_REGISTRY))}"
        ) from None
    return cls(config)
