"""Compliance statistics, recomputed from the audit log.

Stats are never maintained incrementally. :class:`StatsAggregator` rebuilds
them from the effective view of every recorded check, and caches the result
while the audit log sequence and the policy store version are unchanged and
the configured TTL has not expired.
"""
from __future__ import annotations

import datetime
import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from sovereign_compliance.evaluators.base import Severity
from sovereign_compliance.policy.store import PolicyStore
from sovereign_compliance.verdict import Verdict

if TYPE_CHECKING:
    from sovereign_compliance.audit.log import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplianceStats:
    """Aggregate counts over policies and recorded checks.

    Attributes
    ----------
    total_policies:
        Number of policies in the current snapshot, disabled included.
    active_policies:
        Number of enabled policies.
    total_checks:
        Number of recorded checks.
    checks_allowed, checks_denied, checks_conditional, checks_pending:
        Checks by effective verdict; they always sum to ``total_checks``.
        Resolved checks count under their terminal verdict.
    violations_by_severity:
        Violation count per severity, every severity present.
    checks_by_sector:
        Check count per resolved sector mode.
    checks_by_framework:
        Number of checks with at least one violation attributed to each
        framework.
    computed_at:
        ISO-8601 UTC timestamp of the computation.
    log_sequence:
        Audit log sequence the stats were computed at.
    """

    total_policies: int = 0
    active_policies: int = 0
    total_checks: int = 0
    checks_allowed: int = 0
    checks_denied: int = 0
    checks_conditional: int = 0
    checks_pending: int = 0
    violations_by_severity: dict[str, int] = field(default_factory=dict)
    checks_by_sector: dict[str, int] = field(default_factory=dict)
    checks_by_framework: dict[str, int] = field(default_factory=dict)
    computed_at: str = ""
    log_sequence: int = 0


class StatsAggregator:
    """Computes :class:`ComplianceStats` on read with a short-lived cache.

    Parameters
    ----------
    audit_log:
        Source of recorded checks.
    store:
        Source of policy counts.
    ttl_seconds:
        Cache lifetime. 0 disables caching.
    clock:
        Monotonic clock used for cache expiry.
    """

    def __init__(
        self,
        audit_log: "AuditLog",
        store: PolicyStore,
        ttl_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._audit_log = audit_log
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: ComplianceStats | None = None
        self._cache_key: tuple[int, int] | None = None
        self._cached_at = 0.0

    def compute(self) -> ComplianceStats:
        """Return current stats, from cache when still valid."""
        snapshot = self._store.snapshot()
        key = (self._audit_log.sequence, snapshot.version)
        now = self._clock()
        with self._lock:
            if (
                self._cached is not None
                and self._cache_key == key
                and now - self._cached_at < self._ttl
            ):
                logger.debug("Stats cache hit at log sequence %d", key[0])
                return self._cached

        checks = self._audit_log.checks()
        verdicts: Counter[Verdict] = Counter(check.verdict for check in checks)
        severities = {severity.value: 0 for severity in Severity}
        sectors: Counter[str] = Counter()
        frameworks: Counter[str] = Counter()
        for check in checks:
            sectors[check.sector_mode.value] += 1
            for violation in check.result.violations:
                severities[violation.severity.value] += 1
            frameworks.update(
                {v.framework for v in check.result.violations if v.framework}
            )

        stats = ComplianceStats(
            total_policies=len(snapshot.policies),
            active_policies=len(snapshot.active_policies()),
            total_checks=len(checks),
            checks_allowed=verdicts[Verdict.ALLOWED],
            checks_denied=verdicts[Verdict.DENIED],
            checks_conditional=verdicts[Verdict.CONDITIONAL],
            checks_pending=verdicts[Verdict.PENDING_APPROVAL],
            violations_by_severity=severities,
            checks_by_sector=dict(sorted(sectors.items())),
            checks_by_framework=dict(sorted(frameworks.items())),
            computed_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            log_sequence=key[0],
        )
        with self._lock:
            self._cached = stats
            self._cache_key = key
            self._cached_at = now
        return stats

    def invalidate(self) -> None:
        """Drop the cached stats."""
        with self._lock:
            self._cached = None
            self._cache_key = None


__all__ = [
    "ComplianceStats",
    "StatsAggregator",
]
