"""Tests for ComplianceEngine."""
from __future__ import annotations

from sovereign_compliance.config import EngineConfig
from sovereign_compliance.engine import ComplianceEngine
from sovereign_compliance.evaluators.base import EvaluatorName
from sovereign_compliance.policy.loader import load_catalogue
from sovereign_compliance.policy.models import (
    DataResidencyPolicy,
    GeoRestriction,
    Operation,
    RestrictionLevel,
    SectorMode,
    SectorModeConfig,
)
from sovereign_compliance.policy.store import PolicyStore
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.verdict import Verdict


def _request(**overrides: object) -> ComplianceRequest:
    fields: dict[str, object] = {
        "tenant_id": "tenant-1",
        "operation": "data_storage",
        "source_country": "SA",
        "sector_mode": "civilian",
        "data_types": ("personal",),
        "encrypted": True,
    }
    fields.update(overrides)
    return ComplianceRequest(**fields)  # type: ignore[arg-type]


def _store() -> PolicyStore:
    return PolicyStore(
        policies=[
            DataResidencyPolicy(
                policy_id="gcc",
                region="GCC",
                encryption_required=True,
                cross_border_transfer_allowed=False,
            ),
        ],
        sector_configs=[SectorModeConfig(mode=SectorMode.CIVILIAN)],
    )


class TestEngineRun:
    def test_clean_request_allowed(self) -> None:
        evaluation = ComplianceEngine(_store()).run(_request())
        assert evaluation.result.verdict is Verdict.ALLOWED
        assert evaluation.policy_version == 0
        assert evaluation.sector_mode is SectorMode.CIVILIAN
        assert evaluation.sector_recognised is True

    def test_combines_evaluators(self) -> None:
        store = _store()
        store.add_restriction(
            GeoRestriction(
                restriction_id="geo-us",
                country_code="US",
                restriction_level=RestrictionLevel.RESTRICTED,
            )
        )
        result = ComplianceEngine(store).evaluate(
            _request(operation="cross_border", target_country="US", encrypted=False)
        )
        assert result.verdict is Verdict.DENIED
        assert result.violation_codes() == [
            "CROSS_BORDER_DENIED",
            "GEO_RESTRICTED",
            "ENCRYPTION_REQUIRED",
        ]
        assert result.conditions[0].evaluator is EvaluatorName.GEOGRAPHIC

    def test_unknown_sector_recorded(self) -> None:
        evaluation = ComplianceEngine(_store()).run(_request(sector_mode="experimental"))
        assert evaluation.sector_recognised is False
        assert evaluation.sector_mode is SectorMode.CIVILIAN
        assert evaluation.result.verdict is Verdict.ALLOWED
        assert evaluation.result.violation_codes() == ["UNKNOWN_SECTOR_MODE"]

    def test_request_review_flag(self) -> None:
        result = ComplianceEngine(_store()).evaluate(_request(requires_review=True))
        assert result.verdict is Verdict.PENDING_APPROVAL

    def test_config_review_tenant(self) -> None:
        engine = ComplianceEngine(_store(), EngineConfig(review_tenants=["tenant-1"]))
        assert engine.evaluate(_request()).verdict is Verdict.PENDING_APPROVAL
        assert engine.evaluate(_request(tenant_id="other")).verdict is Verdict.ALLOWED

    def test_config_review_operation(self) -> None:
        engine = ComplianceEngine(
            _store(), EngineConfig(review_operations=[Operation.DATA_STORAGE])
        )
        assert engine.evaluate(_request()).verdict is Verdict.PENDING_APPROVAL

    def test_explicit_snapshot(self) -> None:
        store = _store()
        old = store.snapshot()
        store.disable_policy("gcc")
        engine = ComplianceEngine(store)
        request = _request(operation="cross_border", target_country="US")
        assert engine.run(request, old).result.verdict is Verdict.DENIED
        assert engine.run(request).result.verdict is Verdict.ALLOWED
        assert engine.run(request).policy_version == 1

    def test_deterministic(self) -> None:
        engine = ComplianceEngine(load_catalogue())
        request = _request(
            operation="cross_border",
            target_country="US",
            sector_mode="government",
            data_types=("government", "personal"),
            encrypted=False,
        )
        assert engine.evaluate(request) == engine.evaluate(request)
