"""Compliance evaluation pipeline.

Runs the residency, geographic and sector evaluators in that fixed order
against one policy snapshot and aggregates their findings into a verdict.
The engine is pure with respect to the policy store: it reads one snapshot
per evaluation and holds no per-request state, so any number of
evaluations may run concurrently.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sovereign_compliance.config import EngineConfig
from sovereign_compliance.evaluators.base import EvaluationContext, Evaluator
from sovereign_compliance.evaluators.geographic import GeographicEvaluator
from sovereign_compliance.evaluators.residency import ResidencyEvaluator
from sovereign_compliance.evaluators.sector import SectorEvaluator, resolve_sector_mode
from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.models import SectorMode
from sovereign_compliance.policy.store import PolicySnapshot, PolicyStore
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.verdict import ComplianceResult, aggregate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """A result together with the inputs needed to reproduce it.

    Attributes
    ----------
    result:
        The aggregated compliance result.
    policy_version:
        Version of the snapshot the request was evaluated against.
    sector_mode:
        The resolved sector mode (civilian for unknown modes).
    sector_recognised:
        False when the requested sector mode was unknown.
    review_required:
        True when the request or the engine config flagged it for human review.
    """

    result: ComplianceResult
    policy_version: int
    sector_mode: SectorMode
    sector_recognised: bool = True
    review_required: bool = False


class ComplianceEngine:
    """Evaluates compliance requests against a policy store.

    Parameters
    ----------
    store:
        The policy store to read snapshots from.
    config:
        Engine configuration; used for tenant/operation review flags.
    jurisdictions:
        Region membership lookup. The built-in map is used if not provided.
    """

    def __init__(
        self,
        store: PolicyStore,
        config: EngineConfig | None = None,
        jurisdictions: JurisdictionMap | None = None,
    ) -> None:
        self._store = store
        self._config = config or EngineConfig()
        self._jurisdictions = jurisdictions or JurisdictionMap()
        self._evaluators: tuple[Evaluator, ...] = (
            ResidencyEvaluator(),
            GeographicEvaluator(),
            SectorEvaluator(),
        )

    @property
    def store(self) -> PolicyStore:
        """The policy store this engine reads from."""
        return self._store

    def run(
        self,
        request: ComplianceRequest,
        snapshot: PolicySnapshot | None = None,
        config_review: bool = True,
    ) -> Evaluation:
        """Evaluate a request and return the result with its provenance.

        Parameters
        ----------
        request:
            The validated request.
        snapshot:
            Snapshot to evaluate against. The store's current snapshot is
            used if not provided.
        config_review:
            Apply the configured review tenants and operations. Replays pass
            False and rely on the review flag recorded on the check.

        Returns
        -------
        Evaluation
            Result, snapshot version and resolved sector mode.
        """
        snapshot = snapshot if snapshot is not None else self._store.snapshot()
        sector_mode, recognised = resolve_sector_mode(request.sector_mode)
        context = EvaluationContext(snapshot=snapshot, jurisdictions=self._jurisdictions)

        findings = [
            evaluator.evaluate(request, context, sector_mode) for evaluator in self._evaluators
        ]
        needs_review = request.requires_review or (
            config_review and self._config.requires_review(request.tenant_id, request.operation)
        )
        result = aggregate(findings, requires_review=needs_review)
        logger.debug(
            "Evaluated %s %s->%s (%s) against policy v%d: %s",
            request.operation.value,
            request.source_country,
            request.target_country or "-",
            sector_mode.value,
            snapshot.version,
            result.verdict.value,
        )
        return Evaluation(
            result=result,
            policy_version=snapshot.version,
            sector_mode=sector_mode,
            sector_recognised=recognised,
            review_required=needs_review,
        )

    def evaluate(
        self,
        request: ComplianceRequest,
        snapshot: PolicySnapshot | None = None,
    ) -> ComplianceResult:
        """Evaluate a request and return only the ComplianceResult."""
        return self.run(request, snapshot).result


__all__ = [
    "ComplianceEngine",
    "Evaluation",
]
