"""Residency evaluator.

Checks a request against the enabled data residency policies that cover
its source country and data types: cross-border permission, destination
allow/block lists, local-storage-only rules and encryption attestation.
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
from sovereign_compliance.policy.models import DataResidencyPolicy, Operation, SectorMode
from sovereign_compliance.request import ComplianceRequest


class ResidencyEvaluator(Evaluator):
    """Evaluates data residency policies for the request's source country."""

    name = EvaluatorName.RESIDENCY

    def evaluate(
        self,
        request: ComplianceRequest,
        context: EvaluationContext,
        sector_mode: SectorMode,
    ) -> Findings:
        policies = sorted(
            context.snapshot.policies_covering(
                request.source_country, request.data_types, context.jurisdictions
            ),
            key=lambda policy: policy.policy_id,
        )
        if not policies:
            return Findings(
                evaluator=self.name,
                violations=(
                    Violation(
                        code=ViolationCode.NO_POLICY_DEFINED,
                        severity=Severity.LOW,
                        message=(
                            f"No enabled residency policy covers {request.source_country!r} "
                            f"for data types {list(request.data_types)}."
                        ),
                        evaluator=self.name,
                        remediation="Define a residency policy for the source region.",
                    ),
                ),
            )

        violations: list[Violation] = []
        conditions: list[Condition] = []
        for policy in policies:
            self._check_policy(request, policy, context, violations, conditions)
        return Findings(
            evaluator=self.name,
            violations=tuple(violations),
            conditions=tuple(conditions),
        )

    def _check_policy(
        self,
        request: ComplianceRequest,
        policy: DataResidencyPolicy,
        context: EvaluationContext,
        violations: list[Violation],
        conditions: list[Condition],
    ) -> None:
        framework = policy.frameworks[0] if policy.frameworks else None
        target = request.target_country
        target_in_region = target is not None and context.jurisdictions.covers(policy.region, target)

        if request.is_cross_border:
            if not policy.cross_border_transfer_allowed:
                violations.append(Violation(
                    code=ViolationCode.CROSS_BORDER_DENIED,
                    severity=Severity.CRITICAL,
                    message=(
                        f"Policy {policy.policy_id!r} ({policy.region}) does not allow "
                        f"cross-border transfer out of {request.source_country!r}."
                    ),
                    evaluator=self.name,
                    framework=framework,
                    remediation="Keep data within the source region.",
                ))
            else:
                for text in policy.cross_border_conditions:
                    conditions.append(Condition(text=text, evaluator=self.name))

            if target is not None and target in policy.blocked_countries:
                violations.append(Violation(
                    code=ViolationCode.BLOCKED_DESTINATION,
                    severity=Severity.CRITICAL,
                    message=f"Transfer to {target!r} is blocked by policy {policy.policy_id!r}.",
                    evaluator=self.name,
                    framework=framework,
                    remediation="Choose a different destination.",
                ))
            elif (
                target is not None
                and policy.cross_border_transfer_allowed
                and policy.allowed_countries
                and target not in policy.allowed_countries
                and not target_in_region
            ):
                violations.append(Violation(
                    code=ViolationCode.DESTINATION_NOT_ALLOWED,
                    severity=Severity.HIGH,
                    message=(
                        f"Destination {target!r} is not in the allowed countries of "
                        f"policy {policy.policy_id!r}: {list(policy.allowed_countries)}."
                    ),
                    evaluator=self.name,
                    framework=framework,
                    remediation="Transfer only to an allowed country or obtain approval.",
                ))

        if (
            request.operation == Operation.DATA_STORAGE
            and target is not None
            and not target_in_region
            and policy.local_storage_only
        ):
            violations.append(Violation(
                code=ViolationCode.LOCAL_STORAGE_ONLY,
                severity=Severity.CRITICAL,
                message=(
                    f"Policy {policy.policy_id!r} requires local storage within "
                    f"{policy.region}; storage in {target!r} is not permitted."
                ),
                evaluator=self.name,
                framework=framework,
                remediation="Store data in the source region only.",
            ))

        if policy.encryption_required and not request.encrypted:
            violations.append(Violation(
                code=ViolationCode.ENCRYPTION_REQUIRED,
                severity=Severity.MEDIUM,
                message=(
                    f"Policy {policy.policy_id!r} requires encryption, but the request "
                    "does not attest it."
                ),
                evaluator=self.name,
                framework=framework,
                remediation="Encrypt the data and attest encryption on the request.",
            ))


__all__ = ["ResidencyEvaluator"]
