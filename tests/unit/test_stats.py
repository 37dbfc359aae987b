"""Tests for StatsAggregator."""
from __future__ import annotations

from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.records import ComplianceCheck, new_id
from sovereign_compliance.evaluators.base import EvaluatorName, Severity, Violation, ViolationCode
from sovereign_compliance.policy.models import DataResidencyPolicy, Operation, SectorMode
from sovereign_compliance.policy.store import PolicyStore
from sovereign_compliance.stats import ComplianceStats, StatsAggregator
from sovereign_compliance.verdict import ComplianceResult, Verdict


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _violation(severity: Severity, framework: str | None = None) -> Violation:
    return Violation(
        code=ViolationCode.ENCRYPTION_REQUIRED,
        severity=severity,
        message="",
        evaluator=EvaluatorName.RESIDENCY,
        framework=framework,
    )


def _check(
    verdict: Verdict,
    sector_mode: SectorMode = SectorMode.CIVILIAN,
    violations: tuple[Violation, ...] = (),
) -> ComplianceCheck:
    return ComplianceCheck(
        check_id=new_id("check"),
        tenant_id="tenant-1",
        operation=Operation.DATA_TRANSFER,
        source_country="SA",
        target_country=None,
        sector_mode=sector_mode,
        requested_sector_mode=sector_mode.value,
        data_types=(),
        policy_version=0,
        result=ComplianceResult(verdict=verdict, violations=violations),
    )


def _store() -> PolicyStore:
    return PolicyStore(policies=[
        DataResidencyPolicy(policy_id="a", region="EU"),
        DataResidencyPolicy(policy_id="b", region="GCC", enabled=False),
    ])


class TestCompute:
    def test_empty(self) -> None:
        stats = StatsAggregator(AuditLog(), _store()).compute()
        assert stats.total_checks == 0
        assert stats.total_policies == 2
        assert stats.active_policies == 1
        assert stats.violations_by_severity == {
            "info": 0, "low": 0, "medium": 0, "high": 0, "critical": 0
        }

    def test_counts_by_verdict_sum_to_total(self) -> None:
        log = AuditLog()
        for verdict in (
            Verdict.ALLOWED, Verdict.ALLOWED, Verdict.DENIED,
            Verdict.CONDITIONAL, Verdict.PENDING_APPROVAL,
        ):
            log.record(_check(verdict))
        stats = StatsAggregator(log, _store(), ttl_seconds=0).compute()
        assert stats.total_checks == 5
        assert stats.checks_allowed == 2
        assert stats.checks_denied == 1
        assert stats.checks_conditional == 1
        assert stats.checks_pending == 1
        assert (
            stats.checks_allowed + stats.checks_denied
            + stats.checks_conditional + stats.checks_pending
        ) == stats.total_checks

    def test_resolved_counts_under_terminal_verdict(self) -> None:
        log = AuditLog()
        check = _check(Verdict.PENDING_APPROVAL)
        log.record(check)
        log.resolve(check.check_id, Verdict.DENIED)
        stats = StatsAggregator(log, _store(), ttl_seconds=0).compute()
        assert stats.checks_pending == 0
        assert stats.checks_denied == 1

    def test_breakdowns(self) -> None:
        log = AuditLog()
        log.record(_check(
            Verdict.DENIED,
            SectorMode.MILITARY,
            (_violation(Severity.CRITICAL, "PDPA"), _violation(Severity.MEDIUM, "PDPA")),
        ))
        log.record(_check(Verdict.CONDITIONAL, violations=(_violation(Severity.HIGH, "GDPR"),)))
        stats = StatsAggregator(log, _store(), ttl_seconds=0).compute()
        assert stats.violations_by_severity["critical"] == 1
        assert stats.violations_by_severity["medium"] == 1
        assert stats.violations_by_severity["high"] == 1
        assert stats.checks_by_sector == {"civilian": 1, "military": 1}
        assert stats.checks_by_framework == {"GDPR": 1, "PDPA": 1}
        assert stats.log_sequence == 2


class TestCache:
    def test_cached_while_unchanged(self) -> None:
        log = AuditLog()
        aggregator = StatsAggregator(log, _store(), ttl_seconds=10, clock=_Clock())
        assert aggregator.compute() is aggregator.compute()

    def test_new_check_invalidates(self) -> None:
        log = AuditLog()
        aggregator = StatsAggregator(log, _store(), ttl_seconds=10, clock=_Clock())
        aggregator.compute()
        log.record(_check(Verdict.ALLOWED))
        assert aggregator.compute().total_checks == 1

    def test_policy_change_invalidates(self) -> None:
        store = _store()
        aggregator = StatsAggregator(AuditLog(), store, ttl_seconds=10, clock=_Clock())
        aggregator.compute()
        store.disable_policy("a")
        assert aggregator.compute().active_policies == 0

    def test_ttl_expiry(self) -> None:
        clock = _Clock()
        aggregator = StatsAggregator(AuditLog(), _store(), ttl_seconds=5, clock=clock)
        first = aggregator.compute()
        clock.now = 6.0
        assert aggregator.compute() is not first

    def test_zero_ttl_disables_cache(self) -> None:
        aggregator = StatsAggregator(AuditLog(), _store(), ttl_seconds=0, clock=_Clock())
        assert aggregator.compute() is not aggregator.compute()

    def test_invalidate(self) -> None:
        aggregator = StatsAggregator(AuditLog(), _store(), ttl_seconds=10, clock=_Clock())
        first = aggregator.compute()
        aggregator.invalidate()
        assert aggregator.compute() is not first


class TestComplianceStats:
    def test_defaults(self) -> None:
        stats = ComplianceStats()
        assert stats.total_checks == 0
        assert stats.violations_by_severity == {}
