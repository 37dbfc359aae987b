"""Compliance service facade.

:class:`ComplianceService` wires the policy store, evaluation engine, audit
log, reconciler, approval workflow and stats aggregator together and exposes
the operations remote callers use. :func:`create_service` builds one from an
:class:`~sovereign_compliance.config.EngineConfig`, a YAML config file, or
defaults.

Example
-------
::

    from sovereign_compliance import create_service

    service = create_service()
    check = service.check(
        "data_storage",
        "SA",
        sector_mode="government",
        tenant_id="tenant-1",
        data_types=["government"],
        encrypted=True,
    )
    print(check.verdict.value)
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel

from sovereign_compliance.approval import ApprovalWorkflow
from sovereign_compliance.audit.backends import (
    AuditBackend,
    InMemoryAuditBackend,
    JsonLinesAuditBackend,
)
from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.reconciler import AuditReconciler
from sovereign_compliance.audit.records import ComplianceCheck, new_id
from sovereign_compliance.config import EngineConfig, load_config
from sovereign_compliance.engine import ComplianceEngine
from sovereign_compliance.errors import AuditWriteDeferred, CheckNotFound
from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.loader import load_catalogue
from sovereign_compliance.policy.models import (
    DataResidencyPolicy,
    GeoRestriction,
    Operation,
    SectorModeConfig,
)
from sovereign_compliance.policy.store import PolicySnapshot, PolicyStore
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.schemas import (
    CheckRequestPayload,
    GeoRestrictionModel,
    PolicyModel,
    SectorModeConfigModel,
    parse_payload,
)
from sovereign_compliance.stats import ComplianceStats, StatsAggregator
from sovereign_compliance.verdict import Verdict

logger = logging.getLogger(__name__)


def _as_record(value: Any, record_type: type, model: type[BaseModel]) -> Any:
    if isinstance(value, record_type):
        return value
    return parse_payload(model, value).to_record()


class ComplianceService:
    """In-process compliance service.

    Parameters
    ----------
    store:
        Policy store. Defaults to the catalogue named in ``config`` or the
        built-in default catalogue.
    config:
        Engine configuration. Defaults to :class:`EngineConfig` defaults.
    audit_backend:
        Audit persistence backend. Defaults to a JSON-lines file when
        ``config.audit_log_path`` is set, otherwise memory.
    jurisdictions:
        Region membership lookup used by the engine.
    """

    def __init__(
        self,
        store: PolicyStore | None = None,
        config: EngineConfig | None = None,
        audit_backend: AuditBackend | None = None,
        jurisdictions: JurisdictionMap | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._store = store if store is not None else load_catalogue(self._config.policy_catalogue)
        if audit_backend is None:
            audit_backend = (
                JsonLinesAuditBackend(self._config.audit_log_path)
                if self._config.audit_log_path is not None
                else InMemoryAuditBackend()
            )
        self._audit_log = AuditLog(audit_backend, self._config)
        self._engine = ComplianceEngine(self._store, self._config, jurisdictions)
        self._reconciler = AuditReconciler(self._audit_log)
        self._approvals = ApprovalWorkflow(self._audit_log)
        self._stats = StatsAggregator(
            self._audit_log, self._store, ttl_seconds=self._config.stats_cache_ttl_seconds
        )
        self._store.add_listener(self._on_publish)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> PolicyStore:
        return self._store

    @property
    def engine(self) -> ComplianceEngine:
        return self._engine

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    @property
    def reconciler(self) -> AuditReconciler:
        return self._reconciler

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(
        self,
        operation: Operation | str,
        source_country: str,
        target_country: str | None = None,
        *,
        sector_mode: str,
        tenant_id: str,
        data_types: Iterable[str] = (),
        encrypted: bool | None = None,
        encryption_standard: str | None = None,
        audit_level: str | None = None,
        requires_review: bool = False,
        checked_by: str = "",
    ) -> ComplianceCheck:
        """Evaluate and record one proposed operation.

        Parameters
        ----------
        operation:
            ``data_transfer``, ``data_storage``, ``data_processing`` or
            ``cross_border``.
        source_country:
            Country the data originates from.
        target_country:
            Destination country, if the data moves.
        sector_mode:
            Sector the operation runs under. Unknown values fall back to
            civilian defaults.
        tenant_id:
            Tenant the operation belongs to.
        data_types:
            Data classifications involved.
        encrypted:
            Encryption attestation.
        encryption_standard, audit_level:
            Declared capabilities, checked against the sector minimums.
        requires_review:
            Force human review of the outcome.
        checked_by:
            Identity of the requesting actor.

        Returns
        -------
        ComplianceCheck
            The recorded check. ``audit_pending`` is True if the audit write
            was deferred.

        Raises
        ------
        InvalidRequest
            If the request is malformed. Nothing is recorded.
        """
        request = ComplianceRequest(
            tenant_id=tenant_id,
            operation=operation,  # type: ignore[arg-type]
            source_country=source_country,
            sector_mode=sector_mode,
            target_country=target_country,
            data_types=tuple(data_types),
            encrypted=encrypted,
            encryption_standard=encryption_standard,  # type: ignore[arg-type]
            audit_level=audit_level,  # type: ignore[arg-type]
            requires_review=requires_review,
            checked_by=checked_by,
        )
        return self.submit(request)

    def check_payload(self, payload: dict[str, Any]) -> ComplianceCheck:
        """Validate a wire payload and evaluate it.

        Raises
        ------
        InvalidRequest
            If the payload does not match :class:`CheckRequestPayload`.
        """
        request = parse_payload(CheckRequestPayload, payload).to_record()
        return self.submit(request)

    def submit(self, request: ComplianceRequest) -> ComplianceCheck:
        """Evaluate a validated request and record the check."""
        evaluation = self._engine.run(request)
        check = ComplianceCheck(
            check_id=new_id("check"),
            tenant_id=request.tenant_id,
            operation=request.operation,
            source_country=request.source_country,
            target_country=request.target_country,
            sector_mode=evaluation.sector_mode,
            requested_sector_mode=request.sector_mode,
            data_types=request.data_types,
            policy_version=evaluation.policy_version,
            result=evaluation.result,
            checked_by=request.checked_by,
            encrypted=request.encrypted,
            encryption_standard=request.encryption_standard,
            audit_level=request.audit_level,
            review_requested=request.requires_review,
            review_required=evaluation.review_required,
        )
        try:
            self._audit_log.record(check)
        except AuditWriteDeferred as exc:
            logger.warning("Returning check %s with audit pending: %s", check.check_id, exc)
            check = replace(check, audit_pending=True)
            self._reconciler.defer(check)

        logger.info(
            "Check %s for tenant %s: %s (%d violation(s), policy v%d)",
            check.check_id,
            check.tenant_id,
            check.verdict.value,
            len(check.result.violations),
            check.policy_version,
        )
        return check

    def checks(self, **filters: Any) -> list[ComplianceCheck]:
        """Return recorded checks, newest first.

        Accepts the keyword filters of :meth:`AuditLog.query`.
        """
        return self._audit_log.query(**filters)

    def get_check(self, check_id: str) -> ComplianceCheck:
        """Return a check by id, including checks awaiting audit reconciliation.

        Raises
        ------
        CheckNotFound
            If no such check exists.
        """
        try:
            return self._audit_log.get(check_id)
        except CheckNotFound:
            pending = self._reconciler.get(check_id)
            if pending is None:
                raise
            return pending

    def replay(self, check_id: str) -> bool:
        """Re-evaluate a check against the policy version it was recorded under.

        The review flag recorded on the check is used in place of the
        current review configuration.

        Returns
        -------
        bool
            True if the replay reproduces the recorded result exactly.
        """
        check = self.get_check(check_id)
        snapshot = self._store.snapshot_at(check.policy_version)
        replayed = self._engine.run(check.to_request(), snapshot, config_review=False).result
        recorded = check.result
        if check.is_resolved:
            recorded = replace(recorded, verdict=Verdict.PENDING_APPROVAL)
        reproduced = replayed == recorded
        if not reproduced:
            logger.warning(
                "Replay of check %s produced %s, recorded %s",
                check_id,
                replayed.verdict.value,
                recorded.verdict.value,
            )
        return reproduced

    def reconcile(self) -> list[str]:
        """Retry deferred audit writes. Returns the ids written."""
        return self._reconciler.reconcile()

    # ------------------------------------------------------------------
    # Approval and stats
    # ------------------------------------------------------------------

    def approve(
        self,
        check_id: str,
        decision: Verdict | str,
        approver: str = "",
        note: str = "",
    ) -> ComplianceCheck:
        """Resolve a pending check. See :meth:`ApprovalWorkflow.approve`."""
        return self._approvals.approve(check_id, decision, approver=approver, note=note)

    def stats(self) -> ComplianceStats:
        """Return compliance stats recomputed from the audit log."""
        return self._stats.compute()

    # ------------------------------------------------------------------
    # Policy store
    # ------------------------------------------------------------------

    def policies(self) -> list[DataResidencyPolicy]:
        """Return every residency policy in the current snapshot."""
        return list(self._store.snapshot().policies)

    def geo_restrictions(self) -> list[GeoRestriction]:
        """Return every geo restriction in the current snapshot."""
        return list(self._store.snapshot().restrictions)

    def sector_modes(self) -> list[SectorModeConfig]:
        """Return every sector mode configuration in the current snapshot."""
        return list(self._store.snapshot().sector_configs)

    def upsert_policy(self, policy: DataResidencyPolicy | dict[str, Any]) -> PolicySnapshot:
        """Add or replace a residency policy and publish a new snapshot."""
        return self._store.upsert_policy(_as_record(policy, DataResidencyPolicy, PolicyModel))

    def disable_policy(self, policy_id: str) -> PolicySnapshot:
        """Disable a residency policy and publish a new snapshot."""
        return self._store.disable_policy(policy_id)

    def add_restriction(self, restriction: GeoRestriction | dict[str, Any]) -> PolicySnapshot:
        """Add or replace a geo restriction and publish a new snapshot."""
        return self._store.add_restriction(
            _as_record(restriction, GeoRestriction, GeoRestrictionModel)
        )

    def remove_restriction(self, restriction_id: str) -> PolicySnapshot:
        """Remove a geo restriction and publish a new snapshot."""
        return self._store.remove_restriction(restriction_id)

    def set_sector_config(self, config: SectorModeConfig | dict[str, Any]) -> PolicySnapshot:
        """Replace a sector mode configuration and publish a new snapshot."""
        return self._store.set_sector_config(
            _as_record(config, SectorModeConfig, SectorModeConfigModel)
        )

    def _on_publish(self, snapshot: PolicySnapshot, description: str) -> None:
        try:
            self._audit_log.record_publication(snapshot.version, description)
        except AuditWriteDeferred as exc:
            logger.warning("Policy publication v%d not audited yet: %s", snapshot.version, exc)
            self._reconciler.defer_publication(snapshot.version, description)


def create_service(
    config: Union[EngineConfig, str, Path, None] = None,
    store: Optional[PolicyStore] = None,
) -> ComplianceService:
    """Build a ComplianceService from a config object, a YAML config, or defaults.

    Parameters
    ----------
    config:
        An :class:`EngineConfig`, a path to a YAML config file, an inline
        YAML string, or None for defaults.
    store:
        Policy store to use instead of the configured catalogue.
    """
    if not isinstance(config, EngineConfig):
        config = load_config(config)
    return ComplianceService(store=store, config=config)


__all__ = [
    "ComplianceService",
    "create_service",
]
