"""In-process counters for lifecycle activity."""

from __future__ import annotations

from collections import Counter
from typing import Any

_Key = tuple[str, tuple[tuple[str, str], ...]]


class LifecycleMetrics:
    """Labelled monotonic counters.

    Names in use: ``status_transition{to}``, ``transition_rejected{reason}``,
    ``auto_assigned``, ``after_photos_added``, ``report_created``.
    """

    def __init__(self) -> None:
        self._counters: Counter[_Key] = Counter()

    @staticmethod
    def _key(name: str, labels: dict[str, Any]) -> _Key:
        return name, tuple(sorted((k, str(v)) for k, v in labels.items()))

    def inc(self, name: str, amount: int = 1, **labels: Any) -> None:
        self._counters[self._key(name, labels)] += amount

    def get(self, name: str, **labels: Any) -> int:
        return self._counters.get(self._key(name, labels), 0)

    def total(self, name: str) -> int:
        """Sum of ``name`` across every label set."""
        return sum(n for (key, _), n in self._counters.items() if key == name)

    def snapshot(self) -> list[dict[str, Any]]:
        return [
            {"name": name, "labels": dict(labels), "count": count}
            for (name, labels), count in sorted(self._counters.items())
        ]

    def reset(self) -> None:
        self._counters.clear()
