"""Audit record types.

A :class:`ComplianceCheck` is the immutable record of one evaluation. The
only post-creation change is an approver resolving a ``pending-approval``
check, which is recorded as a separate, linked :class:`ApprovalResolution`
entry; :meth:`ComplianceCheck.with_resolution` produces the effective view
without touching the original record.
"""
from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from sovereign_compliance.policy.models import (
    AuditLevel,
    EncryptionStandard,
    Operation,
    SectorMode,
)
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.verdict import ComplianceResult, Verdict


def _utc_now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    """Return a unique identifier such as ``"check-3f2a..."``."""
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class ApprovalResolution:
    """Approver decision on a pending check.

    Attributes
    ----------
    resolution_id:
        Unique identifier of the resolution record.
    check_id:
        The check being resolved.
    decision:
        Terminal verdict (``allowed`` or ``denied``).
    approver:
        Identity of the approving authority.
    note:
        Free-text justification.
    resolved_at:
        ISO-8601 UTC timestamp of the decision.
    """

    resolution_id: str
    check_id: str
    decision: Verdict
    approver: str = ""
    note: str = ""
    resolved_at: str = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ComplianceCheck:
    """Immutable record of one compliance evaluation.

    Attributes
    ----------
    check_id:
        Unique identifier.
    tenant_id:
        Tenant the operation belongs to.
    operation:
        The requested operation.
    source_country:
        Source country code.
    target_country:
        Target country code, or None.
    sector_mode:
        Resolved sector mode used for evaluation.
    requested_sector_mode:
        Sector mode string as supplied by the caller.
    data_types:
        Data classifications involved.
    policy_version:
        Version of the policy snapshot used.
    result:
        The produced result. On a resolved check's effective view the
        verdict is the approver's decision.
    checked_at:
        ISO-8601 UTC timestamp of evaluation.
    checked_by:
        Identity of the requesting actor.
    audit_pending:
        True when the audit write was deferred and awaits reconciliation.
    resolution:
        The linked approval resolution, if any.
    encrypted, encryption_standard, audit_level, review_requested:
        Attestations and the review flag as supplied on the request, kept
        so the check can be replayed.
    review_required:
        The effective review flag at check time, including tenants and
        operations flagged by the engine config. Replays use it instead of
        the current config.
    """

    check_id: str
    tenant_id: str
    operation: Operation
    source_country: str
    target_country: str | None
    sector_mode: SectorMode
    requested_sector_mode: str
    data_types: tuple[str, ...]
    policy_version: int
    result: ComplianceResult
    checked_at: str = field(default_factory=_utc_now)
    checked_by: str = ""
    audit_pending: bool = False
    resolution: ApprovalResolution | None = None
    encrypted: bool | None = None
    encryption_standard: EncryptionStandard | None = None
    audit_level: AuditLevel | None = None
    review_requested: bool = False
    review_required: bool = False

    @property
    def verdict(self) -> Verdict:
        """Return the current verdict of this check."""
        return self.result.verdict

    @property
    def is_resolved(self) -> bool:
        """Return True if an approver has resolved this check."""
        return self.resolution is not None

    def to_request(self) -> ComplianceRequest:
        """Rebuild the request this check was evaluated from."""
        return ComplianceRequest(
            tenant_id=self.tenant_id,
            operation=self.operation,
            source_country=self.source_country,
            sector_mode=self.requested_sector_mode,
            target_country=self.target_country,
            data_types=self.data_types,
            encrypted=self.encrypted,
            encryption_standard=self.encryption_standard,
            audit_level=self.audit_level,
            requires_review=self.review_requested or self.review_required,
            checked_by=self.checked_by,
        )

    def with_resolution(self, resolution: ApprovalResolution) -> "ComplianceCheck":
        """Return the effective view of this check after ``resolution``."""
        return replace(
            self,
            result=replace(self.result, verdict=resolution.decision),
            resolution=resolution,
        )


class AuditAction(str, Enum):
    """Kind of audit log entry."""

    CHECK_RECORDED = "check_recorded"
    CHECK_RESOLVED = "check_resolved"
    POLICY_PUBLISHED = "policy_published"


@dataclass(frozen=True)
class AuditEntry:
    """One append-only audit log entry.

    Attributes
    ----------
    sequence:
        Position in the log, starting at 1.
    entry_id:
        Unique identifier.
    action:
        What the entry records.
    recorded_at:
        ISO-8601 UTC timestamp of the append.
    check:
        The recorded check for ``CHECK_RECORDED`` entries.
    resolution:
        The resolution for ``CHECK_RESOLVED`` entries.
    details:
        Free-form details, e.g. the published policy version.
    """

    sequence: int
    entry_id: str
    action: AuditAction
    recorded_at: str = field(default_factory=_utc_now)
    check: ComplianceCheck | None = None
    resolution: ApprovalResolution | None = None
    details: dict[str, Any] = field(default_factory=dict, compare=False)


__all__ = [
    "ApprovalResolution",
    "AuditAction",
    "AuditEntry",
    "ComplianceCheck",
    "new_id",
]
