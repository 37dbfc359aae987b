"""Versioned, copy-on-write policy store.

Readers take a :class:`PolicySnapshot`, an immutable view of every policy,
restriction and sector configuration at one version, and evaluate against
it without locking. Writers are serialised; each write validates the new
state, builds a fresh snapshot with ``version + 1`` and publishes it by a
single reference swap, so an in-progress edit is never partially visible.

Every published snapshot is retained, so a recorded check can always be
re-evaluated against the exact policy version it was decided on.
"""
from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable

from sovereign_compliance.errors import ConfigurationError
from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.models import (
    DataResidencyPolicy,
    GeoRestriction,
    SectorMode,
    SectorModeConfig,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicySnapshot:
    """Immutable view of the policy store at one version.

    Attributes
    ----------
    version:
        Monotonically increasing version number. The empty store is 0.
    policies:
        All residency policies, enabled or not, ordered by ``policy_id``.
    restrictions:
        All geo restrictions, ordered by ``restriction_id``.
    sector_configs:
        Sector configurations, ordered by sector mode declaration order.
    published_at:
        ISO-8601 UTC timestamp of publication.
    """

    version: int = 0
    policies: tuple[DataResidencyPolicy, ...] = ()
    restrictions: tuple[GeoRestriction, ...] = ()
    sector_configs: tuple[SectorModeConfig, ...] = ()
    published_at: str = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc).isoformat()
    )

    def active_policies(self) -> list[DataResidencyPolicy]:
        """Return enabled policies in ``policy_id`` order."""
        return [policy for policy in self.policies if policy.enabled]

    def policies_covering(
        self,
        country: str,
        data_types: tuple[str, ...],
        jurisdictions: JurisdictionMap,
    ) -> list[DataResidencyPolicy]:
        """Return enabled policies covering ``country`` and ``data_types``.

        A policy covers a country when its region covers the country;
        ``allowed_countries`` only constrains destinations.
        """
        return [
            policy
            for policy in self.active_policies()
            if jurisdictions.covers(policy.region, country)
            and policy.covers_data_types(data_types)
        ]

    def restrictions_for(
        self,
        country: str,
        sector_mode: SectorMode,
        jurisdictions: JurisdictionMap | None = None,
    ) -> list[GeoRestriction]:
        """Return enabled restrictions for ``country`` applying to ``sector_mode``.

        With ``jurisdictions``, a restriction keyed on a region code (``"EU"``)
        also applies to every member country of that region. Without it only
        exact country codes match.
        """
        return [
            restriction
            for restriction in self.restrictions
            if restriction.enabled
            and (
                jurisdictions.covers(restriction.country_code, country)
                if jurisdictions is not None
                else restriction.country_code == country
            )
            and restriction.applies_to(sector_mode)
        ]

    def sector_config(self, mode: SectorMode) -> SectorModeConfig | None:
        """Return the configuration for ``mode``, or None if not configured."""
        for config in self.sector_configs:
            if config.mode == mode:
                return config
        return None

    def get_policy(self, policy_id: str) -> DataResidencyPolicy:
        """Return the policy with ``policy_id``.

        Raises
        ------
        KeyError
            If no such policy exists in this snapshot.
        """
        for policy in self.policies:
            if policy.policy_id == policy_id:
                return policy
        raise KeyError(f"No residency policy with policy_id={policy_id!r} in version {self.version}.")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_snapshot(
    policies: Iterable[DataResidencyPolicy],
    restrictions: Iterable[GeoRestriction],
    sector_configs: Iterable[SectorModeConfig],
) -> None:
    """Check the store invariants for a candidate state.

    Raises
    ------
    ConfigurationError
        If two enabled policies share a region, two enabled restrictions
        overlap on a (country, sector mode) pair, ids are duplicated, or a
        sector mode is configured more than once.
    """
    seen_ids: set[str] = set()
    regions: dict[str, str] = {}
    for policy in policies:
        if policy.policy_id in seen_ids:
            raise ConfigurationError(f"Duplicate residency policy id {policy.policy_id!r}.")
        seen_ids.add(policy.policy_id)
        if not policy.enabled:
            continue
        if policy.region in regions:
            raise ConfigurationError(
                f"Residency policies {regions[policy.region]!r} and {policy.policy_id!r} "
                f"are both enabled for region {policy.region!r}. Only one enabled "
                "policy may govern a region; disable one before enabling the other."
            )
        regions[policy.region] = policy.policy_id

    seen_ids = set()
    occupied: dict[tuple[str, SectorMode], str] = {}
    for restriction in restrictions:
        if restriction.restriction_id in seen_ids:
            raise ConfigurationError(
                f"Duplicate geo restriction id {restriction.restriction_id!r}."
            )
        seen_ids.add(restriction.restriction_id)
        if not restriction.enabled:
            continue
        for mode in sorted(restriction.effective_modes(), key=lambda m: list(SectorMode).index(m)):
            key = (restriction.country_code, mode)
            if key in occupied:
                raise ConfigurationError(
                    f"Geo restrictions {occupied[key]!r} and {restriction.restriction_id!r} "
                    f"conflict: both apply to country {restriction.country_code!r} "
                    f"under sector mode {mode.value!r}."
                )
            occupied[key] = restriction.restriction_id

    modes: set[SectorMode] = set()
    for config in sector_configs:
        if config.mode in modes:
            raise ConfigurationError(
                f"Sector mode {config.mode.value!r} is configured more than once."
            )
        modes.add(config.mode)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

PublishListener = Callable[[PolicySnapshot, str], None]


class PolicyStore:
    """Single-writer, many-reader store of policy snapshots.

    Parameters
    ----------
    policies:
        Initial residency policies.
    restrictions:
        Initial geo restrictions.
    sector_configs:
        Initial sector mode configurations.

    Raises
    ------
    ConfigurationError
        If the initial state violates a store invariant.
    """

    def __init__(
        self,
        policies: Iterable[DataResidencyPolicy] = (),
        restrictions: Iterable[GeoRestriction] = (),
        sector_configs: Iterable[SectorModeConfig] = (),
    ) -> None:
        self._write_lock = threading.Lock()
        self._listeners: list[PublishListener] = []
        initial = self._build(0, list(policies), list(restrictions), list(sector_configs))
        self._current: PolicySnapshot = initial
        self._history: dict[int, PolicySnapshot] = {initial.version: initial}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> PolicySnapshot:
        """Return the current snapshot. Never blocks."""
        return self._current

    @property
    def version(self) -> int:
        """Return the current snapshot version."""
        return self._current.version

    def snapshot_at(self, version: int) -> PolicySnapshot:
        """Return the snapshot published as ``version``.

        Raises
        ------
        KeyError
            If no snapshot with that version was ever published.
        """
        try:
            return self._history[version]
        except KeyError:
            raise KeyError(
                f"Policy snapshot version {version} does not exist. "
                f"Known versions: 0..{self.version}"
            ) from None

    def add_listener(self, listener: PublishListener) -> None:
        """Register a callable invoked with ``(snapshot, description)`` after each publish."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_policy(self, policy: DataResidencyPolicy) -> PolicySnapshot:
        """Add or replace a residency policy by ``policy_id``."""
        def change(snapshot: PolicySnapshot) -> PolicySnapshot:
            others = [p for p in snapshot.policies if p.policy_id != policy.policy_id]
            return replace(snapshot, policies=tuple(others + [policy]))

        return self._publish(change, f"upsert policy {policy.policy_id}")

    def disable_policy(self, policy_id: str) -> PolicySnapshot:
        """Disable a residency policy.

        Raises
        ------
        KeyError
            If ``policy_id`` is unknown.
        """
        def change(snapshot: PolicySnapshot) -> PolicySnapshot:
            existing = snapshot.get_policy(policy_id)
            others = [p for p in snapshot.policies if p.policy_id != policy_id]
            return replace(snapshot, policies=tuple(others + [replace(existing, enabled=False)]))

        return self._publish(change, f"disable policy {policy_id}")

    def add_restriction(self, restriction: GeoRestriction) -> PolicySnapshot:
        """Add or replace a geo restriction by ``restriction_id``."""
        def change(snapshot: PolicySnapshot) -> PolicySnapshot:
            others = [
                r for r in snapshot.restrictions
                if r.restriction_id != restriction.restriction_id
            ]
            return replace(snapshot, restrictions=tuple(others + [restriction]))

        return self._publish(change, f"add restriction {restriction.restriction_id}")

    def remove_restriction(self, restriction_id: str) -> PolicySnapshot:
        """Remove a geo restriction.

        Raises
        ------
        KeyError
            If ``restriction_id`` is unknown.
        """
        def change(snapshot: PolicySnapshot) -> PolicySnapshot:
            remaining = [r for r in snapshot.restrictions if r.restriction_id != restriction_id]
            if len(remaining) == len(snapshot.restrictions):
                raise KeyError(f"No geo restriction with restriction_id={restriction_id!r}.")
            return replace(snapshot, restrictions=tuple(remaining))

        return self._publish(change, f"remove restriction {restriction_id}")

    def set_sector_config(self, config: SectorModeConfig) -> PolicySnapshot:
        """Set the configuration for ``config.mode``, replacing any existing one."""
        def change(snapshot: PolicySnapshot) -> PolicySnapshot:
            others = [c for c in snapshot.sector_configs if c.mode != config.mode]
            return replace(snapshot, sector_configs=tuple(others + [config]))

        return self._publish(change, f"set sector config {config.mode.value}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish(
        self,
        change: Callable[[PolicySnapshot], PolicySnapshot],
        description: str,
    ) -> PolicySnapshot:
        with self._write_lock:
            current = self._current
            candidate = change(current)
            published = self._build(
                current.version + 1,
                list(candidate.policies),
                list(candidate.restrictions),
                list(candidate.sector_configs),
            )
            self._history[published.version] = published
            self._current = published
        logger.info("Published policy snapshot v%d (%s)", published.version, description)
        for listener in list(self._listeners):
            listener(published, description)
        return published

    @staticmethod
    def _build(
        version: int,
        policies: list[DataResidencyPolicy],
        restrictions: list[GeoRestriction],
        sector_configs: list[SectorModeConfig],
    ) -> PolicySnapshot:
        validate_snapshot(policies, restrictions, sector_configs)
        mode_order = list(SectorMode)
        return PolicySnapshot(
            version=version,
            policies=tuple(sorted(policies, key=lambda p: p.policy_id)),
            restrictions=tuple(sorted(restrictions, key=lambda r: r.restriction_id)),
            sector_configs=tuple(sorted(sector_configs, key=lambda c: mode_order.index(c.mode))),
        )


__all__ = [
    "PolicySnapshot",
    "PolicyStore",
    "validate_snapshot",
]
