"""Append-only audit log, persistence backends and reconciliation."""
from __future__ import annotations

from sovereign_compliance.audit.records import (
    ApprovalResolution,
    AuditAction,
    AuditEntry,
    ComplianceCheck,
    new_id,
)
from sovereign_compliance.audit.backends import (
    AuditBackend,
    InMemoryAuditBackend,
    JsonLinesAuditBackend,
)
from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.reconciler import AuditReconciler

__all__ = [
    "ApprovalResolution",
    "AuditAction",
    "AuditBackend",
    "AuditEntry",
    "AuditLog",
    "AuditReconciler",
    "ComplianceCheck",
    "InMemoryAuditBackend",
    "JsonLinesAuditBackend",
    "new_id",
]
