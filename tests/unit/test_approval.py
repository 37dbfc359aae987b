"""Tests for ApprovalWorkflow."""
from __future__ import annotations

import pytest

from sovereign_compliance.approval import ApprovalWorkflow
from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.records import AuditAction, ComplianceCheck, new_id
from sovereign_compliance.errors import AlreadyResolved, CheckNotFound, InvalidRequest
from sovereign_compliance.policy.models import Operation, SectorMode
from sovereign_compliance.verdict import ComplianceResult, Verdict


def _record(log: AuditLog, verdict: Verdict) -> str:
    return log.record(ComplianceCheck(
        check_id=new_id("check"),
        tenant_id="tenant-1",
        operation=Operation.DATA_PROCESSING,
        source_country="SA",
        target_country=None,
        sector_mode=SectorMode.SECURITY,
        requested_sector_mode="security",
        data_types=(),
        policy_version=0,
        result=ComplianceResult(verdict=verdict, requires_sign_off=True),
    ))


class TestApprove:
    def test_allow(self) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.PENDING_APPROVAL)
        check = ApprovalWorkflow(log).approve(check_id, "allowed", approver="minister", note="ok")
        assert check.verdict is Verdict.ALLOWED
        assert check.resolution is not None
        assert check.resolution.note == "ok"

    def test_deny(self) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.PENDING_APPROVAL)
        check = ApprovalWorkflow(log).approve(check_id, Verdict.DENIED)
        assert check.verdict is Verdict.DENIED

    def test_appends_linked_entry(self) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.PENDING_APPROVAL)
        ApprovalWorkflow(log).approve(check_id, "denied")
        actions = [e.action for e in log.entries()]
        assert actions == [AuditAction.CHECK_RECORDED, AuditAction.CHECK_RESOLVED]

    @pytest.mark.parametrize("decision", ["conditional", "pending-approval", "maybe", ""])
    def test_non_terminal_decision_rejected(self, decision: str) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.PENDING_APPROVAL)
        with pytest.raises(InvalidRequest):
            ApprovalWorkflow(log).approve(check_id, decision)
        assert log.get(check_id).verdict is Verdict.PENDING_APPROVAL

    def test_unknown_check(self) -> None:
        with pytest.raises(CheckNotFound):
            ApprovalWorkflow(AuditLog()).approve("check-missing", "allowed")

    def test_idempotent_rejection(self) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.PENDING_APPROVAL)
        workflow = ApprovalWorkflow(log)
        workflow.approve(check_id, "allowed")
        sequence = log.sequence
        with pytest.raises(AlreadyResolved) as exc_info:
            workflow.approve(check_id, "allowed")
        assert exc_info.value.current == "allowed"
        assert log.sequence == sequence

    def test_allowed_check_cannot_be_approved(self) -> None:
        log = AuditLog()
        check_id = _record(log, Verdict.ALLOWED)
        with pytest.raises(AlreadyResolved):
            ApprovalWorkflow(log).approve(check_id, "denied")
