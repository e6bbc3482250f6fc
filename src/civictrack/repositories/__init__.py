"""Repository pattern layer for CivicTrack.

Provides protocol interfaces for the report store, the user directory and
notification storage, and a resolve() helper that transparently handles
both sync (in-memory) and async (Postgres) store returns.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, TypeVar

T = TypeVar("T")


async def resolve(value: T | Awaitable[T]) -> T:
    """Await a value if it is awaitable, otherwise return it directly.

    This lets services call store methods uniformly:
        report = await resolve(store.get(report_id))

    In-memory stores return plain values; Postgres repos return coroutines.
    """
    if inspect.isawaitable(value):
        return await value  # type: ignore[return-value]
    return value  # type: ignore[return-value]
