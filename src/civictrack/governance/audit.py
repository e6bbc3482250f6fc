"""Append-only audit trail of report lifecycle events.

Entries are written to a JSONL file. Each entry's digest covers the
previous entry's digest, so editing or removing any line breaks the chain
for everything after it.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from civictrack.core.config import AuditConfig
from civictrack.core.types import AuditEvent

_GENESIS_SEED = b"civictrack-genesis"


class AuditEntry:
    """An AuditEvent together with its chain links."""

    def __init__(self, event: AuditEvent, previous_hash: str, entry_hash: str) -> None:
        self.event = event
        self.previous_hash = previous_hash
        self.entry_hash = entry_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous_hash": self.previous_hash,
            "entry_hash": self.entry_hash,
            "event": json.loads(self.event.model_dump_json()),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEntry:
        return cls(
            event=AuditEvent(**data["event"]),
            previous_hash=data["previous_hash"],
            entry_hash=data["entry_hash"],
        )


class AuditLogger:
    """Hash-chained JSONL audit logger.

    Args:
        config: AuditConfig instance; defaults to one read from the environment.
        log_file: Name of the JSONL file inside ``config.log_dir``.
    """

    def __init__(
        self,
        config: AuditConfig | None = None,
        log_file: str = "lifecycle.jsonl",
    ) -> None:
        self._config = config or AuditConfig()
        self._algorithm = self._config.hash_algorithm
        log_dir = Path(self._config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        self._log_path = log_dir / log_file
        self._last_hash = self._genesis_hash()
        for entry in self._entries():
            self._last_hash = entry.entry_hash

    def _digest(self, payload: bytes) -> str:
        return hashlib.new(self._algorithm, payload).hexdigest()

    def _genesis_hash(self) -> str:
        return self._digest(_GENESIS_SEED)

    def _chain_hash(self, previous_hash: str, event_json: str) -> str:
        return self._digest((previous_hash + event_json).encode("utf-8"))

    def _entries(self) -> Iterator[AuditEntry]:
        if not self._log_path.exists():
            return
        with open(self._log_path) as fh:
            for line in fh:
                stripped = line.strip()
                if stripped:
                    yield AuditEntry.from_dict(json.loads(stripped))

    def log(self, event: AuditEvent) -> AuditEntry:
        """Append ``event`` and return it with its chain links."""
        entry_hash = self._chain_hash(self._last_hash, event.model_dump_json())
        entry = AuditEntry(event=event, previous_hash=self._last_hash, entry_hash=entry_hash)
        with open(self._log_path, "a") as fh:
            fh.write(json.dumps(entry.to_dict()) + "\n")
        self._last_hash = entry_hash
        return entry

    def verify_chain(self) -> bool:
        """Recompute every link; False if any entry was altered, dropped or reordered."""
        previous = self._genesis_hash()
        for entry in self._entries():
            if entry.previous_hash != previous:
                return False
            if entry.entry_hash != self._chain_hash(previous, entry.event.model_dump_json()):
                return False
            previous = entry.entry_hash
        return True

    def query(
        self,
        *,
        actor: str | None = None,
        action: str | None = None,
        resource: str | None = None,
        after: datetime | None = None,
        before: datetime | None = None,
    ) -> list[AuditEvent]:
        """Return events matching every given filter, oldest first."""
        if after is not None and after.tzinfo is None:
            after = after.replace(tzinfo=timezone.utc)
        if before is not None and before.tzinfo is None:
            before = before.replace(tzinfo=timezone.utc)

        results: list[AuditEvent] = []
        for entry in self._entries():
            event = entry.event
            if actor is not None and event.actor != actor:
                continue
            if action is not None and event.action != action:
                continue
            if resource is not None and event.resource != resource:
                continue
            if after is not None and event.timestamp <= after:
                continue
            if before is not None and event.timestamp >= before:
                continue
            results.append(event)
        return results

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def last_hash(self) -> str:
        return self._last_hash
