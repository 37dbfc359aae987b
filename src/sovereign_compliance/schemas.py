"""Wire schemas for service payloads and audit persistence.

Pydantic v2 models mirroring the record dataclasses. Field names are
snake_case in Python and camelCase on the wire (``sourceCountry``,
``policyVersion``); both spellings are accepted on input.

Each model offers ``from_record`` to build it from a domain record and,
where records are read back (requests, approvals, audit entries),
``to_record`` for the reverse direction.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from sovereign_compliance.audit.records import (
    ApprovalResolution,
    AuditAction,
    AuditEntry,
    ComplianceCheck,
)
from sovereign_compliance.errors import InvalidRequest
from sovereign_compliance.evaluators.base import (
    Condition,
    EvaluatorName,
    Severity,
    Violation,
    ViolationCode,
)
from sovereign_compliance.policy.models import (
    AuditLevel,
    DataResidencyPolicy,
    EncryptionStandard,
    GeoRestriction,
    Operation,
    RestrictionLevel,
    SectorMode,
    SectorModeConfig,
    SecurityLevel,
)
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.verdict import ComplianceResult, Verdict

if TYPE_CHECKING:
    from sovereign_compliance.stats import ComplianceStats


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Findings and results
# ---------------------------------------------------------------------------


class ViolationModel(_WireModel):
    code: ViolationCode
    severity: Severity
    message: str
    evaluator: EvaluatorName
    framework: Optional[str] = None
    remediation: str = ""

    @classmethod
    def from_record(cls, violation: Violation) -> "ViolationModel":
        return cls(
            code=violation.code,
            severity=violation.severity,
            message=violation.message,
            evaluator=violation.evaluator,
            framework=violation.framework,
            remediation=violation.remediation,
        )

    def to_record(self) -> Violation:
        return Violation(
            code=self.code,
            severity=self.severity,
            message=self.message,
            evaluator=self.evaluator,
            framework=self.framework,
            remediation=self.remediation,
        )


class ConditionModel(_WireModel):
    text: str
    evaluator: EvaluatorName
    requires_sign_off: bool = False

    @classmethod
    def from_record(cls, condition: Condition) -> "ConditionModel":
        return cls(
            text=condition.text,
            evaluator=condition.evaluator,
            requires_sign_off=condition.requires_sign_off,
        )

    def to_record(self) -> Condition:
        return Condition(
            text=self.text,
            evaluator=self.evaluator,
            requires_sign_off=self.requires_sign_off,
        )


class ResultModel(_WireModel):
    verdict: Verdict
    violations: list[ViolationModel] = Field(default_factory=list)
    conditions: list[ConditionModel] = Field(default_factory=list)
    requires_sign_off: bool = False

    @classmethod
    def from_record(cls, result: ComplianceResult) -> "ResultModel":
        return cls(
            verdict=result.verdict,
            violations=[ViolationModel.from_record(v) for v in result.violations],
            conditions=[ConditionModel.from_record(c) for c in result.conditions],
            requires_sign_off=result.requires_sign_off,
        )

    def to_record(self) -> ComplianceResult:
        return ComplianceResult(
            verdict=self.verdict,
            violations=tuple(v.to_record() for v in self.violations),
            conditions=tuple(c.to_record() for c in self.conditions),
            requires_sign_off=self.requires_sign_off,
        )


# ---------------------------------------------------------------------------
# Checks, resolutions, audit entries
# ---------------------------------------------------------------------------


class ResolutionModel(_WireModel):
    resolution_id: str
    check_id: str
    decision: Verdict
    approver: str = ""
    note: str = ""
    resolved_at: str

    @classmethod
    def from_record(cls, resolution: ApprovalResolution) -> "ResolutionModel":
        return cls(
            resolution_id=resolution.resolution_id,
            check_id=resolution.check_id,
            decision=resolution.decision,
            approver=resolution.approver,
            note=resolution.note,
            resolved_at=resolution.resolved_at,
        )

    def to_record(self) -> ApprovalResolution:
        return ApprovalResolution(
            resolution_id=self.resolution_id,
            check_id=self.check_id,
            decision=self.decision,
            approver=self.approver,
            note=self.note,
            resolved_at=self.resolved_at,
        )


class CheckModel(_WireModel):
    id: str
    tenant_id: str
    operation: Operation
    source_country: str
    target_country: Optional[str] = None
    sector_mode: SectorMode
    requested_sector_mode: str
    data_types: list[str] = Field(default_factory=list)
    policy_version: int
    result: Verdict
    violations: list[ViolationModel] = Field(default_factory=list)
    conditions: list[ConditionModel] = Field(default_factory=list)
    requires_sign_off: bool = False
    checked_at: str
    checked_by: str = ""
    audit_pending: bool = False
    resolution: Optional[ResolutionModel] = None
    encrypted: Optional[bool] = None
    encryption_standard: Optional[EncryptionStandard] = None
    audit_level: Optional[AuditLevel] = None
    review_requested: bool = False
    review_required: bool = False

    @classmethod
    def from_record(cls, check: ComplianceCheck) -> "CheckModel":
        result = ResultModel.from_record(check.result)
        return cls(
            id=check.check_id,
            tenant_id=check.tenant_id,
            operation=check.operation,
            source_country=check.source_country,
            target_country=check.target_country,
            sector_mode=check.sector_mode,
            requested_sector_mode=check.requested_sector_mode,
            data_types=list(check.data_types),
            policy_version=check.policy_version,
            result=result.verdict,
            violations=result.violations,
            conditions=result.conditions,
            requires_sign_off=result.requires_sign_off,
            checked_at=check.checked_at,
            checked_by=check.checked_by,
            audit_pending=check.audit_pending,
            resolution=(
                ResolutionModel.from_record(check.resolution) if check.resolution else None
            ),
            encrypted=check.encrypted,
            encryption_standard=check.encryption_standard,
            audit_level=check.audit_level,
            review_requested=check.review_requested,
            review_required=check.review_required,
        )

    def to_record(self) -> ComplianceCheck:
        return ComplianceCheck(
            check_id=self.id,
            tenant_id=self.tenant_id,
            operation=self.operation,
            source_country=self.source_country,
            target_country=self.target_country,
            sector_mode=self.sector_mode,
            requested_sector_mode=self.requested_sector_mode,
            data_types=tuple(self.data_types),
            policy_version=self.policy_version,
            result=ComplianceResult(
                verdict=self.result,
                violations=tuple(v.to_record() for v in self.violations),
                conditions=tuple(c.to_record() for c in self.conditions),
                requires_sign_off=self.requires_sign_off,
            ),
            checked_at=self.checked_at,
            checked_by=self.checked_by,
            audit_pending=self.audit_pending,
            resolution=self.resolution.to_record() if self.resolution else None,
            encrypted=self.encrypted,
            encryption_standard=self.encryption_standard,
            audit_level=self.audit_level,
            review_requested=self.review_requested,
            review_required=self.review_required,
        )


class AuditEntryModel(_WireModel):
    sequence: int
    entry_id: str
    action: AuditAction
    recorded_at: str
    check: Optional[CheckModel] = None
    resolution: Optional[ResolutionModel] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, entry: AuditEntry) -> "AuditEntryModel":
        return cls(
            sequence=entry.sequence,
            entry_id=entry.entry_id,
            action=entry.action,
            recorded_at=entry.recorded_at,
            check=CheckModel.from_record(entry.check) if entry.check else None,
            resolution=(
                ResolutionModel.from_record(entry.resolution) if entry.resolution else None
            ),
            details=dict(entry.details),
        )

    def to_record(self) -> AuditEntry:
        return AuditEntry(
            sequence=self.sequence,
            entry_id=self.entry_id,
            action=self.action,
            recorded_at=self.recorded_at,
            check=self.check.to_record() if self.check else None,
            resolution=self.resolution.to_record() if self.resolution else None,
            details=dict(self.details),
        )

    def to_json_line(self) -> str:
        """Serialise to one line of JSON (no trailing newline)."""
        return json.dumps(self.model_dump(mode="json", by_alias=True), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "AuditEntryModel":
        """Parse one line produced by :meth:`to_json_line`."""
        return cls.model_validate_json(line)


# ---------------------------------------------------------------------------
# Policy store listings
# ---------------------------------------------------------------------------


class PolicyModel(_WireModel):
    id: str
    region: str
    name: str = ""
    allowed_countries: list[str] = Field(default_factory=list)
    blocked_countries: list[str] = Field(default_factory=list)
    data_types: list[str] = Field(default_factory=list)
    encryption_required: bool = False
    local_storage_only: bool = False
    cross_border_transfer_allowed: bool = True
    cross_border_conditions: list[str] = Field(default_factory=list)
    frameworks: list[str] = Field(default_factory=list)
    description: str = ""
    enabled: bool = True

    @classmethod
    def from_record(cls, policy: DataResidencyPolicy) -> "PolicyModel":
        return cls(
            id=policy.policy_id,
            region=policy.region,
            name=policy.name,
            allowed_countries=list(policy.allowed_countries),
            blocked_countries=list(policy.blocked_countries),
            data_types=list(policy.data_types),
            encryption_required=policy.encryption_required,
            local_storage_only=policy.local_storage_only,
            cross_border_transfer_allowed=policy.cross_border_transfer_allowed,
            cross_border_conditions=list(policy.cross_border_conditions),
            frameworks=list(policy.frameworks),
            description=policy.description,
            enabled=policy.enabled,
        )

    def to_record(self) -> DataResidencyPolicy:
        return DataResidencyPolicy(
            policy_id=self.id,
            region=self.region,
            name=self.name,
            allowed_countries=tuple(self.allowed_countries),
            blocked_countries=tuple(self.blocked_countries),
            data_types=tuple(self.data_types),
            encryption_required=self.encryption_required,
            local_storage_only=self.local_storage_only,
            cross_border_transfer_allowed=self.cross_border_transfer_allowed,
            cross_border_conditions=tuple(self.cross_border_conditions),
            frameworks=tuple(self.frameworks),
            description=self.description,
            enabled=self.enabled,
        )


class GeoRestrictionModel(_WireModel):
    id: str
    country_code: str
    restriction_level: RestrictionLevel = RestrictionLevel.NONE
    sector_modes: list[SectorMode] = Field(default_factory=list)
    blocked_operations: list[Operation] = Field(default_factory=list)
    special_conditions: list[str] = Field(default_factory=list)
    enabled: bool = True

    @classmethod
    def from_record(cls, restriction: GeoRestriction) -> "GeoRestrictionModel":
        return cls(
            id=restriction.restriction_id,
            country_code=restriction.country_code,
            restriction_level=restriction.restriction_level,
            sector_modes=list(restriction.sector_modes),
            blocked_operations=list(restriction.blocked_operations),
            special_conditions=list(restriction.special_conditions),
            enabled=restriction.enabled,
        )

    def to_record(self) -> GeoRestriction:
        return GeoRestriction(
            restriction_id=self.id,
            country_code=self.country_code,
            restriction_level=self.restriction_level,
            sector_modes=tuple(self.sector_modes),
            blocked_operations=tuple(self.blocked_operations),
            special_conditions=tuple(self.special_conditions),
            enabled=self.enabled,
        )


class SectorModeConfigModel(_WireModel):
    mode: SectorMode
    security_level: SecurityLevel
    encryption_standard: EncryptionStandard
    audit_level: AuditLevel
    required_frameworks: list[str] = Field(default_factory=list)
    additional_restrictions: list[str] = Field(default_factory=list)
    data_retention_years: int = 5

    @classmethod
    def from_record(cls, config: SectorModeConfig) -> "SectorModeConfigModel":
        return cls(
            mode=config.mode,
            security_level=config.security_level,
            encryption_standard=config.encryption_standard,
            audit_level=config.audit_level,
            required_frameworks=list(config.required_frameworks),
            additional_restrictions=list(config.additional_restrictions),
            data_retention_years=config.data_retention_years,
        )

    def to_record(self) -> SectorModeConfig:
        return SectorModeConfig(
            mode=self.mode,
            security_level=self.security_level,
            encryption_standard=self.encryption_standard,
            audit_level=self.audit_level,
            required_frameworks=tuple(self.required_frameworks),
            additional_restrictions=tuple(self.additional_restrictions),
            data_retention_years=self.data_retention_years,
        )


class StatsModel(_WireModel):
    total_policies: int
    active_policies: int
    total_checks: int
    checks_allowed: int
    checks_denied: int
    checks_conditional: int
    checks_pending: int
    violations_by_severity: dict[str, int]
    checks_by_sector: dict[str, int]
    checks_by_framework: dict[str, int]
    computed_at: str
    log_sequence: int

    @classmethod
    def from_record(cls, stats: "ComplianceStats") -> "StatsModel":
        return cls(
            total_policies=stats.total_policies,
            active_policies=stats.active_policies,
            total_checks=stats.total_checks,
            checks_allowed=stats.checks_allowed,
            checks_denied=stats.checks_denied,
            checks_conditional=stats.checks_conditional,
            checks_pending=stats.checks_pending,
            violations_by_severity=dict(stats.violations_by_severity),
            checks_by_sector=dict(stats.checks_by_sector),
            checks_by_framework=dict(stats.checks_by_framework),
            computed_at=stats.computed_at,
            log_sequence=stats.log_sequence,
        )


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------


class CheckRequestPayload(_WireModel):
    """Inbound ``check`` payload."""

    tenant_id: str = Field(min_length=1)
    operation: str = Field(min_length=1)
    source_country: str = Field(min_length=1)
    target_country: Optional[str] = None
    sector_mode: str = Field(min_length=1)
    data_types: list[str] = Field(default_factory=list)
    encrypted: Optional[bool] = None
    encryption_standard: Optional[str] = None
    audit_level: Optional[str] = None
    requires_review: bool = False
    checked_by: str = ""

    def to_record(self) -> ComplianceRequest:
        return ComplianceRequest(
            tenant_id=self.tenant_id,
            operation=self.operation,  # type: ignore[arg-type]
            source_country=self.source_country,
            sector_mode=self.sector_mode,
            target_country=self.target_country,
            data_types=tuple(self.data_types),
            encrypted=self.encrypted,
            encryption_standard=self.encryption_standard,  # type: ignore[arg-type]
            audit_level=self.audit_level,  # type: ignore[arg-type]
            requires_review=self.requires_review,
            checked_by=self.checked_by,
        )


class ApprovalPayload(_WireModel):
    """Inbound ``approve`` payload."""

    check_id: str = Field(min_length=1)
    decision: str = Field(min_length=1)
    approver: str = ""
    note: str = ""


def parse_payload(model: type[BaseModel], payload: Any) -> Any:
    """Validate ``payload`` against ``model``.

    Raises
    ------
    InvalidRequest
        If the payload does not match the schema. The message lists each
        failing field.
    """
    if not isinstance(payload, dict):
        raise InvalidRequest(f"Payload must be a JSON object, got {type(payload).__name__}.")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        )
        raise InvalidRequest(f"Invalid payload: {problems}") from exc


__all__ = [
    "ApprovalPayload",
    "AuditEntryModel",
    "CheckModel",
    "CheckRequestPayload",
    "ConditionModel",
    "GeoRestrictionModel",
    "PolicyModel",
    "ResolutionModel",
    "ResultModel",
    "SectorModeConfigModel",
    "StatsModel",
    "ViolationModel",
    "parse_payload",
]
