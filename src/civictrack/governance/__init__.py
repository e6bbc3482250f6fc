"""Governance: tamper-evident audit trail of lifecycle events."""

from civictrack.governance.audit import AuditEntry, AuditLogger

__all__ = ["AuditEntry", "AuditLogger"]
