"""Rule evaluators for sovereign-compliance.

Three independent, composable evaluators run in a fixed order:
residency, geographic restriction, sector mode.
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
from sovereign_compliance.evaluators.geographic import GeographicEvaluator
from sovereign_compliance.evaluators.residency import ResidencyEvaluator
from sovereign_compliance.evaluators.sector import SectorEvaluator, resolve_sector_mode

__all__ = [
    "Condition",
    "EvaluationContext",
    "Evaluator",
    "EvaluatorName",
    "Findings",
    "GeographicEvaluator",
    "ResidencyEvaluator",
    "SectorEvaluator",
    "Severity",
    "Violation",
    "ViolationCode",
    "resolve_sector_mode",
]
