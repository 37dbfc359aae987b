"""Sector mode evaluator.

Compares the request's declared encryption standard and audit level with
the minimums of its sector, notes required legal frameworks that no
covering residency policy certifies, and forces authority sign-off for
``critical`` and ``top-secret`` sectors.
"""
from __future__ import annotations

import logging

from sovereign_compliance.errors import UnknownSectorMode
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
from sovereign_compliance.policy.models import SectorMode, SectorModeConfig
from sovereign_compliance.request import ComplianceRequest

logger = logging.getLogger(__name__)


def resolve_sector_mode(raw: str) -> tuple[SectorMode, bool]:
    """Resolve a raw sector mode string.

    Parameters
    ----------
    raw:
        Sector mode as supplied by the caller.

    Returns
    -------
    tuple[SectorMode, bool]
        The resolved mode and whether ``raw`` was recognised. Unknown
        modes resolve to :attr:`SectorMode.CIVILIAN`.
    """
    try:
        return SectorMode.parse(raw), True
    except UnknownSectorMode as exc:
        logger.warning("%s", exc)
        return SectorMode.CIVILIAN, False


class SectorEvaluator(Evaluator):
    """Evaluates the request against its sector mode configuration."""

    name = EvaluatorName.SECTOR

    def evaluate(
        self,
        request: ComplianceRequest,
        context: EvaluationContext,
        sector_mode: SectorMode,
    ) -> Findings:
        violations: list[Violation] = []
        conditions: list[Condition] = []

        recognised = self._is_known(request.sector_mode)
        if not recognised:
            violations.append(Violation(
                code=ViolationCode.UNKNOWN_SECTOR_MODE,
                severity=Severity.INFO,
                message=(
                    f"Sector mode {request.sector_mode!r} is not recognised; "
                    "civilian defaults were applied."
                ),
                evaluator=self.name,
            ))

        config = self._config_for(context, sector_mode)
        if config is None:
            return Findings(evaluator=self.name, violations=tuple(violations))

        declared_encryption = request.encryption_standard
        if declared_encryption is not None and declared_encryption < config.encryption_standard:
            violations.append(Violation(
                code=ViolationCode.SECTOR_ENCRYPTION_INSUFFICIENT,
                severity=Severity.HIGH,
                message=(
                    f"Encryption {declared_encryption.value} is below the "
                    f"{config.encryption_standard.value} minimum for sector "
                    f"{config.mode.value!r}."
                ),
                evaluator=self.name,
                remediation=f"Use {config.encryption_standard.value} or stronger.",
            ))

        declared_audit = request.audit_level
        if declared_audit is not None and declared_audit < config.audit_level:
            violations.append(Violation(
                code=ViolationCode.SECTOR_AUDIT_INSUFFICIENT,
                severity=Severity.HIGH,
                message=(
                    f"Audit level {declared_audit.value!r} is below the "
                    f"{config.audit_level.value!r} minimum for sector {config.mode.value!r}."
                ),
                evaluator=self.name,
                remediation=f"Enable {config.audit_level.value} audit logging.",
            ))

        uncovered = self._uncovered_frameworks(request, context, config)
        if uncovered:
            violations.append(Violation(
                code=ViolationCode.SECTOR_FRAMEWORK_UNCOVERED,
                severity=Severity.LOW,
                message=(
                    f"Sector {config.mode.value!r} requires frameworks {uncovered} that no "
                    "covering residency policy certifies."
                ),
                evaluator=self.name,
                framework=uncovered[0],
            ))

        if config.requires_sign_off:
            conditions.append(Condition(
                text=(
                    f"requires authority sign-off for {config.mode.value} operations "
                    f"({config.security_level.value})"
                ),
                evaluator=self.name,
                requires_sign_off=True,
            ))
            conditions.append(Condition(
                text=f"Requires {config.encryption_standard.value} encryption",
                evaluator=self.name,
            ))
            conditions.extend(
                Condition(text=text, evaluator=self.name)
                for text in config.additional_restrictions
            )

        return Findings(
            evaluator=self.name,
            violations=tuple(violations),
            conditions=tuple(conditions),
            requires_sign_off=config.requires_sign_off,
        )

    @staticmethod
    def _is_known(raw: str) -> bool:
        try:
            SectorMode.parse(raw)
        except UnknownSectorMode:
            return False
        return True

    @staticmethod
    def _config_for(context: EvaluationContext, sector_mode: SectorMode) -> SectorModeConfig | None:
        # Modes without a configuration fall back to civilian.
        config = context.snapshot.sector_config(sector_mode)
        if config is None and sector_mode != SectorMode.CIVILIAN:
            config = context.snapshot.sector_config(SectorMode.CIVILIAN)
        return config

    @staticmethod
    def _uncovered_frameworks(
        request: ComplianceRequest,
        context: EvaluationContext,
        config: SectorModeConfig,
    ) -> list[str]:
        if not config.required_frameworks:
            return []
        policies = context.snapshot.policies_covering(
            request.source_country, request.data_types, context.jurisdictions
        )
        if not policies:
            # Already reported as NO_POLICY_DEFINED by the residency evaluator.
            return []
        certified = {framework for policy in policies for framework in policy.frameworks}
        return [f for f in config.required_frameworks if f not in certified]


__all__ = ["SectorEvaluator", "resolve_sector_mode"]
