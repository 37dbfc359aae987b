"""Tests for PolicyStore and PolicySnapshot."""
from __future__ import annotations

import threading

import pytest

from sovereign_compliance.errors import ConfigurationError
from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.models import (
    DataResidencyPolicy,
    GeoRestriction,
    RestrictionLevel,
    SectorMode,
    SectorModeConfig,
    SecurityLevel,
)
from sovereign_compliance.policy.store import PolicySnapshot, PolicyStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _policy(policy_id: str, region: str, **kwargs: object) -> DataResidencyPolicy:
    return DataResidencyPolicy(policy_id=policy_id, region=region, **kwargs)  # type: ignore[arg-type]


def _restriction(
    restriction_id: str,
    country: str,
    level: RestrictionLevel = RestrictionLevel.RESTRICTED,
    modes: tuple[SectorMode, ...] = (),
    enabled: bool = True,
) -> GeoRestriction:
    return GeoRestriction(
        restriction_id=restriction_id,
        country_code=country,
        restriction_level=level,
        sector_modes=modes,
        enabled=enabled,
    )


# ---------------------------------------------------------------------------
# Construction and invariants
# ---------------------------------------------------------------------------

class TestStoreInvariants:
    def test_empty_store_is_version_zero(self) -> None:
        store = PolicyStore()
        assert store.version == 0
        assert store.snapshot().policies == ()

    def test_initial_state_sorted(self) -> None:
        store = PolicyStore(policies=[_policy("b", "EU"), _policy("a", "GCC")])
        assert [p.policy_id for p in store.snapshot().policies] == ["a", "b"]

    def test_duplicate_region_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="region"):
            PolicyStore(policies=[_policy("a", "EU"), _policy("b", "EU")])

    def test_duplicate_region_allowed_when_disabled(self) -> None:
        store = PolicyStore(policies=[_policy("a", "EU"), _policy("b", "EU", enabled=False)])
        assert len(store.snapshot().active_policies()) == 1

    def test_duplicate_policy_id_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            PolicyStore(policies=[_policy("a", "EU"), _policy("a", "GCC")])

    def test_overlapping_restrictions_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="conflict"):
            PolicyStore(restrictions=[
                _restriction("r1", "IR", modes=(SectorMode.MILITARY,)),
                _restriction("r2", "IR"),
            ])

    def test_disjoint_modes_allowed(self) -> None:
        store = PolicyStore(restrictions=[
            _restriction("r1", "IR", modes=(SectorMode.MILITARY,)),
            _restriction("r2", "IR", modes=(SectorMode.CIVILIAN,)),
        ])
        assert len(store.snapshot().restrictions) == 2

    def test_disabled_restriction_does_not_conflict(self) -> None:
        store = PolicyStore(restrictions=[
            _restriction("r1", "IR"),
            _restriction("r2", "IR", enabled=False),
        ])
        assert len(store.snapshot().restrictions) == 2

    def test_duplicate_sector_config_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            PolicyStore(sector_configs=[
                SectorModeConfig(mode=SectorMode.CIVILIAN),
                SectorModeConfig(mode=SectorMode.CIVILIAN),
            ])


# ---------------------------------------------------------------------------
# Writes and versioning
# ---------------------------------------------------------------------------

class TestStoreWrites:
    def test_upsert_bumps_version(self) -> None:
        store = PolicyStore()
        snapshot = store.upsert_policy(_policy("a", "EU"))
        assert snapshot.version == 1
        assert store.version == 1

    def test_upsert_replaces_by_id(self) -> None:
        store = PolicyStore(policies=[_policy("a", "EU", name="old")])
        store.upsert_policy(_policy("a", "EU", name="new"))
        assert store.snapshot().get_policy("a").name == "new"
        assert len(store.snapshot().policies) == 1

    def test_conflicting_write_leaves_store_unchanged(self) -> None:
        store = PolicyStore(policies=[_policy("a", "EU")])
        with pytest.raises(ConfigurationError):
            store.upsert_policy(_policy("b", "EU"))
        assert store.version == 0
        assert [p.policy_id for p in store.snapshot().policies] == ["a"]

    def test_disable_policy(self) -> None:
        store = PolicyStore(policies=[_policy("a", "EU")])
        store.disable_policy("a")
        assert store.snapshot().get_policy("a").enabled is False
        assert store.snapshot().active_policies() == []

    def test_disable_unknown_policy(self) -> None:
        with pytest.raises(KeyError):
            PolicyStore().disable_policy("missing")

    def test_add_and_remove_restriction(self) -> None:
        store = PolicyStore()
        store.add_restriction(_restriction("r1", "IR"))
        assert len(store.snapshot().restrictions) == 1
        store.remove_restriction("r1")
        assert store.snapshot().restrictions == ()
        assert store.version == 2

    def test_remove_unknown_restriction(self) -> None:
        with pytest.raises(KeyError):
            PolicyStore().remove_restriction("missing")

    def test_set_sector_config_replaces(self) -> None:
        store = PolicyStore(sector_configs=[SectorModeConfig(mode=SectorMode.MILITARY)])
        store.set_sector_config(
            SectorModeConfig(mode=SectorMode.MILITARY, security_level=SecurityLevel.CRITICAL)
        )
        config = store.snapshot().sector_config(SectorMode.MILITARY)
        assert config is not None
        assert config.security_level is SecurityLevel.CRITICAL

    def test_old_snapshot_unchanged_after_write(self) -> None:
        store = PolicyStore(policies=[_policy("a", "EU")])
        before = store.snapshot()
        store.upsert_policy(_policy("b", "GCC"))
        assert len(before.policies) == 1
        assert len(store.snapshot().policies) == 2

    def test_history_retained(self) -> None:
        store = PolicyStore()
        store.upsert_policy(_policy("a", "EU"))
        store.upsert_policy(_policy("b", "GCC"))
        assert store.snapshot_at(0).policies == ()
        assert len(store.snapshot_at(1).policies) == 1
        assert store.snapshot_at(2) is store.snapshot()

    def test_unknown_version(self) -> None:
        with pytest.raises(KeyError):
            PolicyStore().snapshot_at(7)

    def test_listener_called_after_publish(self) -> None:
        store = PolicyStore()
        seen: list[tuple[int, str]] = []
        store.add_listener(lambda snapshot, description: seen.append((snapshot.version, description)))
        store.upsert_policy(_policy("a", "EU"))
        assert seen == [(1, "upsert policy a")]

    def test_concurrent_writers_do_not_lose_versions(self) -> None:
        store = PolicyStore()

        def write(index: int) -> None:
            store.upsert_policy(_policy(f"p{index}", f"R{index}"))

        threads = [threading.Thread(target=write, args=(i,)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert store.version == 20
        assert len(store.snapshot().policies) == 20


# ---------------------------------------------------------------------------
# Snapshot queries
# ---------------------------------------------------------------------------

class TestSnapshotQueries:
    def test_policies_covering_by_region(self) -> None:
        snapshot = PolicySnapshot(policies=(
            _policy("gcc", "GCC"),
            _policy("eu", "EU"),
        ))
        covering = snapshot.policies_covering("SA", ("personal",), JurisdictionMap())
        assert [p.policy_id for p in covering] == ["gcc"]

    def test_allowed_countries_do_not_grant_coverage(self) -> None:
        snapshot = PolicySnapshot(policies=(_policy("eg", "EGYPT", allowed_countries=["SA"]),))
        assert snapshot.policies_covering("SA", (), JurisdictionMap()) == []

    def test_disabled_policies_ignored(self) -> None:
        snapshot = PolicySnapshot(policies=(_policy("gcc", "GCC", enabled=False),))
        assert snapshot.policies_covering("SA", (), JurisdictionMap()) == []

    def test_data_type_filter(self) -> None:
        snapshot = PolicySnapshot(policies=(_policy("gcc", "GCC", data_types=["health"]),))
        assert snapshot.policies_covering("SA", ("public",), JurisdictionMap()) == []

    def test_restrictions_for_mode(self) -> None:
        snapshot = PolicySnapshot(restrictions=(
            _restriction("r1", "IR", modes=(SectorMode.MILITARY,)),
        ))
        assert len(snapshot.restrictions_for("IR", SectorMode.MILITARY)) == 1
        assert snapshot.restrictions_for("IR", SectorMode.CIVILIAN) == []

    def test_region_restriction_covers_members(self) -> None:
        snapshot = PolicySnapshot(restrictions=(
            _restriction("r-eu", "EU", modes=(SectorMode.MILITARY,)),
        ))
        jurisdictions = JurisdictionMap()
        matched = snapshot.restrictions_for("DE", SectorMode.MILITARY, jurisdictions)
        assert [r.restriction_id for r in matched] == ["r-eu"]
        assert snapshot.restrictions_for("EU", SectorMode.MILITARY, jurisdictions) == matched
        assert snapshot.restrictions_for("US", SectorMode.MILITARY, jurisdictions) == []
        assert snapshot.restrictions_for("DE", SectorMode.MILITARY) == []

    def test_sector_config_missing(self) -> None:
        assert PolicySnapshot().sector_config(SectorMode.MILITARY) is None

    def test_get_policy_missing(self) -> None:
        with pytest.raises(KeyError):
            PolicySnapshot().get_policy("nope")
