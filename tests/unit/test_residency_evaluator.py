"""Tests for ResidencyEvaluator."""
from __future__ import annotations

from sovereign_compliance.evaluators.base import (
    EvaluationContext,
    EvaluatorName,
    Severity,
    ViolationCode,
)
from sovereign_compliance.evaluators.residency import ResidencyEvaluator
from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.models import DataResidencyPolicy, SectorMode
from sovereign_compliance.policy.store import PolicySnapshot
from sovereign_compliance.request import ComplianceRequest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _context(*policies: DataResidencyPolicy) -> EvaluationContext:
    return EvaluationContext(
        snapshot=PolicySnapshot(policies=tuple(policies)),
        jurisdictions=JurisdictionMap(),
    )


def _request(
    operation: str = "data_transfer",
    source: str = "SA",
    target: str | None = None,
    data_types: tuple[str, ...] = ("personal",),
    encrypted: bool | None = True,
) -> ComplianceRequest:
    return ComplianceRequest(
        tenant_id="tenant-1",
        operation=operation,  # type: ignore[arg-type]
        source_country=source,
        sector_mode="civilian",
        target_country=target,
        data_types=data_types,
        encrypted=encrypted,
    )


def _codes(findings: object) -> list[str]:
    return [v.code.value for v in findings.violations]  # type: ignore[attr-defined]


def _evaluate(request: ComplianceRequest, context: EvaluationContext):  # type: ignore[no-untyped-def]
    return ResidencyEvaluator().evaluate(request, context, SectorMode.CIVILIAN)


_LOCAL_ONLY = DataResidencyPolicy(
    policy_id="residency-sa",
    region="SAUDI_ARABIA",
    allowed_countries=["SA"],
    encryption_required=True,
    local_storage_only=True,
    cross_border_transfer_allowed=False,
    frameworks=["PDPA"],
)

_GCC = DataResidencyPolicy(
    policy_id="residency-gcc",
    region="GCC",
    allowed_countries=["SA", "AE"],
    blocked_countries=["IR"],
    cross_border_conditions=["Within GCC only"],
    frameworks=["ISO27001"],
)


# ---------------------------------------------------------------------------
# No policy
# ---------------------------------------------------------------------------

class TestNoPolicy:
    def test_no_policy_defined_is_low(self) -> None:
        findings = _evaluate(_request(source="BR"), _context(_GCC))
        assert _codes(findings) == ["NO_POLICY_DEFINED"]
        assert findings.violations[0].severity is Severity.LOW
        assert findings.evaluator is EvaluatorName.RESIDENCY

    def test_data_type_mismatch_means_no_policy(self) -> None:
        policy = DataResidencyPolicy(policy_id="p", region="GCC", data_types=["health"])
        findings = _evaluate(_request(data_types=("public",)), _context(policy))
        assert _codes(findings) == ["NO_POLICY_DEFINED"]

    def test_mixed_case_data_types_match_policy(self) -> None:
        policy = DataResidencyPolicy(
            policy_id="p", region="SAUDI_ARABIA", data_types=["government"],
            cross_border_transfer_allowed=False,
        )
        findings = _evaluate(
            _request("cross_border", target="US", data_types=("Government",)),
            _context(policy),
        )
        assert _codes(findings) == ["CROSS_BORDER_DENIED"]


# ---------------------------------------------------------------------------
# Cross-border
# ---------------------------------------------------------------------------

class TestCrossBorder:
    def test_denied_when_transfer_disallowed(self) -> None:
        findings = _evaluate(_request("cross_border", target="US"), _context(_LOCAL_ONLY))
        assert _codes(findings) == ["CROSS_BORDER_DENIED"]
        violation = findings.violations[0]
        assert violation.severity is Severity.CRITICAL
        assert violation.framework == "PDPA"

    def test_transfer_with_target_is_cross_border(self) -> None:
        findings = _evaluate(_request("data_transfer", target="US"), _context(_LOCAL_ONLY))
        assert "CROSS_BORDER_DENIED" in _codes(findings)

    def test_same_country_target_is_not_cross_border(self) -> None:
        findings = _evaluate(_request("data_transfer", target="SA"), _context(_LOCAL_ONLY))
        assert _codes(findings) == []

    def test_allowed_transfer_attaches_conditions(self) -> None:
        findings = _evaluate(_request("cross_border", target="AE"), _context(_GCC))
        assert _codes(findings) == []
        assert [c.text for c in findings.conditions] == ["Within GCC only"]

    def test_blocked_destination(self) -> None:
        findings = _evaluate(_request("cross_border", target="IR"), _context(_GCC))
        assert _codes(findings) == ["BLOCKED_DESTINATION"]
        assert findings.violations[0].severity is Severity.CRITICAL

    def test_destination_not_allowed(self) -> None:
        findings = _evaluate(_request("cross_border", target="US"), _context(_GCC))
        assert _codes(findings) == ["DESTINATION_NOT_ALLOWED"]
        assert findings.violations[0].severity is Severity.HIGH

    def test_destination_in_region_is_allowed(self) -> None:
        # QA is a GCC member but not listed in allowed_countries.
        findings = _evaluate(_request("cross_border", target="QA"), _context(_GCC))
        assert "DESTINATION_NOT_ALLOWED" not in _codes(findings)

    def test_empty_allow_list_allows_any_destination(self) -> None:
        policy = DataResidencyPolicy(policy_id="eu", region="EU")
        findings = _evaluate(_request("cross_border", source="DE", target="US"), _context(policy))
        assert _codes(findings) == []


# ---------------------------------------------------------------------------
# Storage and encryption
# ---------------------------------------------------------------------------

class TestStorageAndEncryption:
    def test_local_storage_only(self) -> None:
        policy = DataResidencyPolicy(
            policy_id="gcc", region="GCC", local_storage_only=True
        )
        findings = _evaluate(_request("data_storage", target="US"), _context(policy))
        assert _codes(findings) == ["LOCAL_STORAGE_ONLY"]
        assert findings.violations[0].severity is Severity.CRITICAL

    def test_local_storage_within_region(self) -> None:
        policy = DataResidencyPolicy(
            policy_id="gcc", region="GCC", local_storage_only=True
        )
        findings = _evaluate(_request("data_storage", target="AE"), _context(policy))
        assert "LOCAL_STORAGE_ONLY" not in _codes(findings)

    def test_storage_without_target(self) -> None:
        findings = _evaluate(_request("data_storage"), _context(_LOCAL_ONLY))
        assert _codes(findings) == []

    def test_encryption_required(self) -> None:
        findings = _evaluate(_request(encrypted=False), _context(_LOCAL_ONLY))
        assert _codes(findings) == ["ENCRYPTION_REQUIRED"]
        assert findings.violations[0].severity is Severity.MEDIUM

    def test_missing_attestation_counts_as_unencrypted(self) -> None:
        findings = _evaluate(_request(encrypted=None), _context(_LOCAL_ONLY))
        assert _codes(findings) == ["ENCRYPTION_REQUIRED"]


# ---------------------------------------------------------------------------
# Multiple policies
# ---------------------------------------------------------------------------

class TestMultiplePolicies:
    def test_policies_evaluated_in_id_order(self) -> None:
        findings = _evaluate(
            _request("cross_border", target="US", encrypted=False),
            _context(_LOCAL_ONLY, _GCC),
        )
        assert _codes(findings) == [
            "DESTINATION_NOT_ALLOWED",
            "CROSS_BORDER_DENIED",
            "ENCRYPTION_REQUIRED",
        ]

    def test_disabled_policy_ignored(self) -> None:
        disabled = DataResidencyPolicy(
            policy_id="sa", region="SAUDI_ARABIA", cross_border_transfer_allowed=False,
            enabled=False,
        )
        findings = _evaluate(_request("cross_border", target="US"), _context(disabled))
        assert _codes(findings) == ["NO_POLICY_DEFINED"]
