"""Verdict aggregation.

Combines the findings of the residency, geographic and sector evaluators
into one :class:`ComplianceResult` using a severity-dominance rule. The
first matching rule wins:

1. Any ``critical`` violation -> ``denied``.
2. Sector-forced sign-off or a human-review flag -> ``pending-approval``.
3. Any ``high`` or ``medium`` violation, or any condition -> ``conditional``.
4. Otherwise -> ``allowed``.

Aggregation is pure: identical findings always produce an identical result,
including the order of violations and conditions.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from sovereign_compliance.evaluators.base import (
    Condition,
    Findings,
    Severity,
    Violation,
)


class Verdict(str, Enum):
    """Outcome of a compliance check."""

    ALLOWED = "allowed"
    DENIED = "denied"
    CONDITIONAL = "conditional"
    PENDING_APPROVAL = "pending-approval"

    @property
    def is_terminal(self) -> bool:
        """Return True for verdicts an approver may set (allowed or denied)."""
        return self in (Verdict.ALLOWED, Verdict.DENIED)


@dataclass(frozen=True)
class ComplianceResult:
    """Verdict plus the findings that produced it.

    Attributes
    ----------
    verdict:
        The aggregated outcome.
    violations:
        All violations, most severe first; ties keep evaluator order and
        then emission order.
    conditions:
        All conditions in evaluator order, duplicates removed.
    requires_sign_off:
        True if a sector forced authority sign-off.
    """

    verdict: Verdict
    violations: tuple[Violation, ...] = ()
    conditions: tuple[Condition, ...] = ()
    requires_sign_off: bool = False

    @property
    def max_severity(self) -> Severity | None:
        """Return the most severe violation severity, or None if no violations."""
        return self.violations[0].severity if self.violations else None

    def violation_codes(self) -> list[str]:
        """Return violation codes in result order."""
        return [v.code.value for v in self.violations]


def aggregate(findings: Iterable[Findings], requires_review: bool = False) -> ComplianceResult:
    """Aggregate evaluator findings into a ComplianceResult.

    Parameters
    ----------
    findings:
        Findings from each evaluator. They are ordered by evaluator
        (residency, geographic, sector) regardless of input order.
    requires_review:
        True when the tenant, operation or request is flagged for human
        review.

    Returns
    -------
    ComplianceResult
        The deterministic verdict and ordered findings.
    """
    ordered = sorted(findings, key=lambda f: f.evaluator.order)

    indexed: list[tuple[int, int, int, Violation]] = []
    conditions: list[Condition] = []
    seen_conditions: set[str] = set()
    sign_off = False
    position = 0
    for item in ordered:
        sign_off = sign_off or item.requires_sign_off
        for violation in item.violations:
            indexed.append((-violation.severity.rank, item.evaluator.order, position, violation))
            position += 1
        for condition in item.conditions:
            if condition.text in seen_conditions:
                continue
            seen_conditions.add(condition.text)
            conditions.append(condition)

    indexed.sort(key=lambda entry: entry[:3])
    violations = tuple(entry[3] for entry in indexed)

    return ComplianceResult(
        verdict=decide(violations, conditions, sign_off or requires_review),
        violations=violations,
        conditions=tuple(conditions),
        requires_sign_off=sign_off,
    )


def decide(
    violations: Iterable[Violation],
    conditions: Iterable[Condition],
    needs_human_review: bool = False,
) -> Verdict:
    """Apply the severity-dominance rule to a set of findings.

    Parameters
    ----------
    violations:
        All violations, in any order.
    conditions:
        All conditions, in any order.
    needs_human_review:
        True if a sector forces sign-off or the request is flagged for review.

    Returns
    -------
    Verdict
        The first matching outcome of the decision rule.
    """
    severities = {v.severity for v in violations}
    if Severity.CRITICAL in severities:
        return Verdict.DENIED
    if needs_human_review:
        return Verdict.PENDING_APPROVAL
    if Severity.HIGH in severities or Severity.MEDIUM in severities or any(True for _ in conditions):
        return Verdict.CONDITIONAL
    return Verdict.ALLOWED


__all__ = [
    "ComplianceResult",
    "Verdict",
    "aggregate",
    "decide",
]
