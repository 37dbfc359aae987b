"""Geographic restriction evaluator.

Applies per-country, per-sector restrictions to the source country and,
when distinct, the target country. A restriction keyed on a region code
applies to each member country of the region. Restriction level is evaluated
independently of the residency policy's cross-border flag, so a
``prohibited`` restriction denies even where a policy allows transfer.
"""
from __future__ import annotations

from sovereign_compliance.evaluators.base import (
    Condition,
    EvaluationContext,
    Evaluator,
    EvaluatorName,
    Findings,
    Severity,
    Violation,
    ViolationCode,
)
from sovereign_compliance.policy.models import RestrictionLevel, SectorMode
from sovereign_compliance.request import ComplianceRequest


class GeographicEvaluator(Evaluator):
    """Evaluates geo restrictions for every country the request touches."""

    name = EvaluatorName.GEOGRAPHIC

    def evaluate(
        self,
        request: ComplianceRequest,
        context: EvaluationContext,
        sector_mode: SectorMode,
    ) -> Findings:
        violations: list[Violation] = []
        conditions: list[Condition] = []

        for country in request.countries:
            restrictions = context.snapshot.restrictions_for(
                country, sector_mode, context.jurisdictions
            )
            for restriction in restrictions:
                if request.operation in restriction.blocked_operations:
                    violations.append(Violation(
                        code=ViolationCode.GEO_OPERATION_BLOCKED,
                        severity=Severity.CRITICAL,
                        message=(
                            f"Operation {request.operation.value!r} touching {country!r} is "
                            f"blocked under sector mode {sector_mode.value!r} "
                            f"(restriction {restriction.restriction_id!r})."
                        ),
                        evaluator=self.name,
                        remediation="Use a permitted operation or request special authorization.",
                    ))

                if restriction.restriction_level == RestrictionLevel.PROHIBITED:
                    violations.append(Violation(
                        code=ViolationCode.GEO_PROHIBITED,
                        severity=Severity.CRITICAL,
                        message=(
                            f"Operations touching {country!r} are prohibited under sector "
                            f"mode {sector_mode.value!r}."
                        ),
                        evaluator=self.name,
                        remediation="Request special authorization.",
                    ))
                elif restriction.restriction_level == RestrictionLevel.RESTRICTED:
                    conditions.append(Condition(
                        text=(
                            f"requires manual approval for operations touching {country} "
                            f"under {sector_mode.value}"
                        ),
                        evaluator=self.name,
                    ))
                    conditions.extend(
                        Condition(text=text, evaluator=self.name)
                        for text in restriction.special_conditions
                    )
                    violations.append(Violation(
                        code=ViolationCode.GEO_RESTRICTED,
                        severity=Severity.HIGH,
                        message=(
                            f"Operations touching {country!r} are restricted under sector "
                            f"mode {sector_mode.value!r}."
                        ),
                        evaluator=self.name,
                        remediation="Obtain manual approval before proceeding.",
                    ))

        return Findings(
            evaluator=self.name,
            violations=tuple(violations),
            conditions=tuple(conditions),
        )


__all__ = ["GeographicEvaluator"]
