"""Shared finding types and the evaluator base class.

Each rule evaluator is a pure function of a
:class:`~sovereign_compliance.request.ComplianceRequest` and an
:class:`EvaluationContext` (the policy snapshot plus lookups), producing a
:class:`Findings` value. Evaluators never raise for rule mismatches; those
are reported as :class:`Violation` data.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.models import SectorMode
from sovereign_compliance.policy.store import PolicySnapshot
from sovereign_compliance.request import ComplianceRequest


class Severity(str, Enum):
    """Violation severity, least severe first."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Return 0 for ``info`` up to 4 for ``critical``."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class ViolationCode(str, Enum):
    """Stable machine-checkable violation codes."""

    CROSS_BORDER_DENIED = "CROSS_BORDER_DENIED"
    LOCAL_STORAGE_ONLY = "LOCAL_STORAGE_ONLY"
    ENCRYPTION_REQUIRED = "ENCRYPTION_REQUIRED"
    NO_POLICY_DEFINED = "NO_POLICY_DEFINED"
    BLOCKED_DESTINATION = "BLOCKED_DESTINATION"
    DESTINATION_NOT_ALLOWED = "DESTINATION_NOT_ALLOWED"
    GEO_PROHIBITED = "GEO_PROHIBITED"
    GEO_RESTRICTED = "GEO_RESTRICTED"
    GEO_OPERATION_BLOCKED = "GEO_OPERATION_BLOCKED"
    SECTOR_ENCRYPTION_INSUFFICIENT = "SECTOR_ENCRYPTION_INSUFFICIENT"
    SECTOR_AUDIT_INSUFFICIENT = "SECTOR_AUDIT_INSUFFICIENT"
    SECTOR_FRAMEWORK_UNCOVERED = "SECTOR_FRAMEWORK_UNCOVERED"
    UNKNOWN_SECTOR_MODE = "UNKNOWN_SECTOR_MODE"


class EvaluatorName(str, Enum):
    """Evaluators in the fixed order the pipeline runs them."""

    RESIDENCY = "residency"
    GEOGRAPHIC = "geographic"
    SECTOR = "sector"

    @property
    def order(self) -> int:
        """Return the pipeline position of this evaluator."""
        return list(EvaluatorName).index(self)


@dataclass(frozen=True)
class Violation:
    """A specific rule failure.

    Attributes
    ----------
    code:
        Stable violation code.
    severity:
        How serious the failure is.
    message:
        Human-readable description.
    evaluator:
        The evaluator that raised the violation.
    framework:
        Legal framework the violated rule derives from, if known.
    remediation:
        Suggested remediation action.
    """

    code: ViolationCode
    severity: Severity
    message: str
    evaluator: EvaluatorName
    framework: str | None = None
    remediation: str = ""


@dataclass(frozen=True)
class Condition:
    """A non-blocking requirement attached to a result.

    Attributes
    ----------
    text:
        The requirement (e.g. ``"requires authority sign-off"``).
    evaluator:
        The evaluator that attached the condition.
    requires_sign_off:
        True when the condition demands authority sign-off.
    """

    text: str
    evaluator: EvaluatorName
    requires_sign_off: bool = False


@dataclass(frozen=True)
class Findings:
    """Output of one evaluator.

    Attributes
    ----------
    evaluator:
        The evaluator that produced these findings.
    violations:
        Violations in emission order.
    conditions:
        Conditions in emission order.
    requires_sign_off:
        True if the evaluator forces authority sign-off.
    """

    evaluator: EvaluatorName
    violations: tuple[Violation, ...] = ()
    conditions: tuple[Condition, ...] = ()
    requires_sign_off: bool = False


@dataclass(frozen=True)
class EvaluationContext:
    """Read-only inputs shared by all evaluators for one request.

    Attributes
    ----------
    snapshot:
        The policy snapshot the request is evaluated against.
    jurisdictions:
        Region membership lookup.
    """

    snapshot: PolicySnapshot
    jurisdictions: JurisdictionMap = field(default_factory=JurisdictionMap)


class Evaluator:
    """Base class for rule evaluators.

    Subclasses set :attr:`name` and implement :meth:`evaluate`. The
    pipeline calls evaluators in :class:`EvaluatorName` order.
    """

    name: EvaluatorName

    def evaluate(
        self,
        request: ComplianceRequest,
        context: EvaluationContext,
        sector_mode: SectorMode,
    ) -> Findings:
        """Evaluate ``request`` and return the findings.

        Parameters
        ----------
        request:
            The validated compliance request.
        context:
            Snapshot and lookups for this evaluation.
        sector_mode:
            The resolved sector mode (unknown modes already mapped to civilian).

        Returns
        -------
        Findings
            Violations and conditions raised by this evaluator.
        """
        raise NotImplementedError


__all__ = [
    "Condition",
    "EvaluationContext",
    "Evaluator",
    "EvaluatorName",
    "Findings",
    "Severity",
    "Violation",
    "ViolationCode",
]
