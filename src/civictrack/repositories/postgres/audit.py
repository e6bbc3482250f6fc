"""PostgreSQL audit repository preserving hash chain integrity."""

from __future__ import annotations

import asyncio
import hashlib
import json
from datetime import datetime, timezone

from sqlalchemy import select

from civictrack.core.config import AuditConfig
from civictrack.core.types import AuditEvent, DataClassification
from civictrack.db.engine import DatabaseManager
from civictrack.db.models import AuditEventRow
from civictrack.governance.audit import AuditEntry


class PostgresAuditRepository:
    """Postgres-backed audit logger with the same chain as the JSONL logger."""

    def __init__(self, db: DatabaseManager, config: AuditConfig | None = None) -> None:
        self._db = db
        self._config = config or AuditConfig()
        self._last_hash = self._genesis_hash()
        self._lock = asyncio.Lock()

    def _digest(self, payload: bytes) -> str:
        return hashlib.new(self._config.hash_algorithm, payload).hexdigest()

    def _genesis_hash(self) -> str:
        return self._digest(b"civictrack-genesis")

    def _chain_hash(self, previous_hash: str, event_json: str) -> str:
        return self._digest((previous_hash + event_json).encode("utf-8"))

    async def _recover_last_hash(self) -> None:
        async with self._db.session() as db:
            result = await db.execute(
                select(AuditEventRow.entry_hash).order_by(AuditEventRow.seq.desc()).limit(1)
            )
            last = result.scalar_one_or_none()
            if last:
                self._last_hash = last

    async def log(self, event: AuditEvent) -> AuditEntry:
        async with self._lock:
            await self._recover_last_hash()
            event_json = event.model_dump_json()
            entry_hash = self._chain_hash(self._last_hash, event_json)
            entry = AuditEntry(event=event, previous_hash=self._last_hash, entry_hash=entry_hash)

            async with self._db.session() as db:
                db.add(
                    AuditEventRow(
                        event_id=event.event_id,
                        timestamp=event.timestamp,
                        actor=event.actor,
                        actor_role=event.actor_role,
                        action=event.action,
                        resource=event.resource,
                        classification=event.classification.value,
                        details=json.loads(event_json).get("details", {}),
                        previous_hash=self._last_hash,
                        entry_hash=entry_hash,
                    )
                )
                await db.commit()

            self._last_hash = entry_hash
            return entry

    async def verify_chain(self) -> bool:
        """Check that each row links to its predecessor, starting at genesis."""
        async with self._db.session() as db:
            result = await db.execute(select(AuditEventRow).order_by(AuditEventRow.seq))
            rows = result.scalars().all()

        expected_previous = self._genesis_hash()
        for row in rows:
            if row.previous_hash != expected_previous or not row.entry_hash:
                return False
            expected_previous = row.entry_hash
        return True

    async def query(
        self,
        *,
        actor: str | None = None,
        action: str | None = None,
        resource: str | None = None,
        after: datetime | None = None,
        before: datetime | None = None,
    ) -> list[AuditEvent]:
        stmt = select(AuditEventRow).order_by(AuditEventRow.seq)
        if actor is not None:
            stmt = stmt.where(AuditEventRow.actor == actor)
        if action is not None:
            stmt = stmt.where(AuditEventRow.action == action)
        if resource is not None:
            stmt = stmt.where(AuditEventRow.resource == resource)
        if after is not None:
            if after.tzinfo is None:
                after = after.replace(tzinfo=timezone.utc)
            stmt = stmt.where(AuditEventRow.timestamp > after)
        if before is not None:
            if before.tzinfo is None:
                before = before.replace(tzinfo=timezone.utc)
            stmt = stmt.where(AuditEventRow.timestamp < before)

        async with self._db.session() as db:
            result = await db.execute(stmt)
            return [
                AuditEvent(
                    event_id=r.event_id,
                    timestamp=r.timestamp,
                    actor=r.actor,
                    actor_role=r.actor_role,
                    action=r.action,
                    resource=r.resource,
                    classification=DataClassification(r.classification),
                    details=r.details or {},
                )
                for r in result.scalars().all()
            ]

    @property
    def log_path(self) -> None:
        return None

    @property
    def last_hash(self) -> str:
        return self._last_hash
