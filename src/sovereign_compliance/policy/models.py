"""Policy data model for sovereign compliance evaluation.

Defines the closed vocabularies (operations, sector modes, security levels,
encryption standards, audit levels, restriction levels) and the three
administrator-managed record types consulted during evaluation:

- :class:`DataResidencyPolicy`: region-scoped residency rules.
- :class:`GeoRestriction`: per-country, per-sector restriction level.
- :class:`SectorModeConfig`: minimum security posture for a sector mode.

All records are frozen; editing a record means publishing a new policy
snapshot (see :mod:`sovereign_compliance.policy.store`).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sovereign_compliance.errors import UnknownSectorMode


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    """Kind of data operation being checked."""

    DATA_TRANSFER = "data_transfer"
    DATA_STORAGE = "data_storage"
    DATA_PROCESSING = "data_processing"
    CROSS_BORDER = "cross_border"


class SectorMode(str, Enum):
    """Operating context that sets the minimum security posture."""

    CIVILIAN = "civilian"
    GOVERNMENT = "government"
    MILITARY = "military"
    SECURITY = "security"
    CRITICAL_INFRASTRUCTURE = "critical-infrastructure"

    @classmethod
    def parse(cls, value: str) -> "SectorMode":
        """Parse a raw sector mode string.

        Parameters
        ----------
        value:
            Sector mode as supplied by a caller. Case and surrounding
            whitespace are ignored; underscores are accepted for hyphens.

        Returns
        -------
        SectorMode
            The matching sector mode.

        Raises
        ------
        UnknownSectorMode
            If ``value`` does not name a known sector mode.
        """
        normalised = value.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == normalised:
                return mode
        raise UnknownSectorMode(value)


class _Ranked(str, Enum):
    """String enum whose members are ordered by declaration order."""

    @property
    def rank(self) -> int:
        """Return the position of this member in declaration order."""
        return list(type(self)).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return NotImplemented
        return self.rank >= other.rank


class SecurityLevel(_Ranked):
    """Security posture of a sector, from least to most restrictive."""

    STANDARD = "standard"
    ELEVATED = "elevated"
    HIGH = "high"
    CRITICAL = "critical"
    TOP_SECRET = "top-secret"


class EncryptionStandard(_Ranked):
    """Encryption standards, weakest first."""

    AES_128 = "AES-128"
    AES_256 = "AES-256"
    AES_256_GCM = "AES-256-GCM"
    FIPS_140_3 = "FIPS-140-3"


class AuditLevel(_Ranked):
    """Depth of audit logging, shallowest first."""

    BASIC = "basic"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"
    FORENSIC = "forensic"


class RestrictionLevel(str, Enum):
    """Restriction level applied to a country for a set of sectors."""

    NONE = "none"
    RESTRICTED = "restricted"
    PROHIBITED = "prohibited"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def _codes(values: object) -> tuple[str, ...]:
    return tuple(str(v).strip().upper() for v in (values or ()))  # type: ignore[union-attr]


def _strings(values: object) -> tuple[str, ...]:
    return tuple(str(v) for v in (values or ()))  # type: ignore[union-attr]


def normalise_data_types(values: object) -> tuple[str, ...]:
    """Return data classifications stripped, lower-cased, blanks dropped."""
    cleaned = (str(v).strip().lower() for v in (values or ()))  # type: ignore[union-attr]
    return tuple(value for value in cleaned if value)


def _mode(value: object) -> SectorMode:
    if isinstance(value, SectorMode):
        return value
    return SectorMode.parse(str(value))


@dataclass(frozen=True)
class DataResidencyPolicy:
    """Region-scoped rule set governing storage and transfer of data.

    Attributes
    ----------
    policy_id:
        Unique identifier for this policy (e.g. ``"residency-sa"``).
    region:
        Region code the policy governs (e.g. ``"SAUDI_ARABIA"``, ``"GCC"``).
        Unique among enabled policies.
    name:
        Human-readable policy name.
    allowed_countries:
        ISO 3166-1 alpha-2 codes data may move to. Empty means the policy
        does not restrict destinations by allow-list.
    blocked_countries:
        Country codes data must never move to.
    data_types:
        Data classifications the policy covers, matched case-insensitively.
        Empty covers every type.
    encryption_required:
        Whether the operation must attest encryption.
    local_storage_only:
        Whether data may only be stored within the policy region.
    cross_border_transfer_allowed:
        Whether data may leave the source country at all.
    cross_border_conditions:
        Conditions attached to a permitted cross-border transfer
        (e.g. ``"Standard contractual clauses"``).
    frameworks:
        Legal frameworks the policy certifies. Open set of names.
    description:
        Human-readable description of this policy's intent.
    enabled:
        Disabled policies are never consulted.
    """

    policy_id: str
    region: str
    name: str = ""
    allowed_countries: tuple[str, ...] = ()
    blocked_countries: tuple[str, ...] = ()
    data_types: tuple[str, ...] = ()
    encryption_required: bool = False
    local_storage_only: bool = False
    cross_border_transfer_allowed: bool = True
    cross_border_conditions: tuple[str, ...] = ()
    frameworks: tuple[str, ...] = ()
    description: str = ""
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.policy_id:
            raise ValueError("policy_id must not be empty")
        if not self.region:
            raise ValueError("region must not be empty")
        object.__setattr__(self, "region", self.region.strip().upper())
        object.__setattr__(self, "allowed_countries", _codes(self.allowed_countries))
        object.__setattr__(self, "blocked_countries", _codes(self.blocked_countries))
        object.__setattr__(self, "data_types", normalise_data_types(self.data_types))
        object.__setattr__(self, "cross_border_conditions", _strings(self.cross_border_conditions))
        object.__setattr__(self, "frameworks", _strings(self.frameworks))

    def covers_data_types(self, data_types: tuple[str, ...]) -> bool:
        """Return True if the policy applies to any of ``data_types``."""
        if not self.data_types:
            return True
        return any(data_type in self.data_types for data_type in normalise_data_types(data_types))


@dataclass(frozen=True)
class GeoRestriction:
    """Per-country restriction applying to a set of sector modes.

    Attributes
    ----------
    restriction_id:
        Unique identifier for this restriction.
    country_code:
        Country (or region code) the restriction applies to.
    restriction_level:
        How strongly operations touching the country are restricted.
    sector_modes:
        Sector modes the restriction applies to. Empty applies to all modes.
    blocked_operations:
        Operations that are never permitted when touching this country,
        regardless of ``restriction_level``.
    special_conditions:
        Extra conditions attached when the restriction is ``restricted``.
    enabled:
        Disabled restrictions are never consulted.
    """

    restriction_id: str
    country_code: str
    restriction_level: RestrictionLevel = RestrictionLevel.NONE
    sector_modes: tuple[SectorMode, ...] = ()
    blocked_operations: tuple[Operation, ...] = ()
    special_conditions: tuple[str, ...] = ()
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.restriction_id:
            raise ValueError("restriction_id must not be empty")
        if not self.country_code:
            raise ValueError("country_code must not be empty")
        object.__setattr__(self, "country_code", self.country_code.strip().upper())
        object.__setattr__(self, "restriction_level", RestrictionLevel(self.restriction_level))
        object.__setattr__(
            self, "sector_modes", tuple(_mode(m) for m in self.sector_modes)
        )
        object.__setattr__(
            self, "blocked_operations", tuple(Operation(op) for op in self.blocked_operations)
        )
        object.__setattr__(self, "special_conditions", _strings(self.special_conditions))

    def applies_to(self, sector_mode: SectorMode) -> bool:
        """Return True if the restriction applies under ``sector_mode``."""
        return not self.sector_modes or sector_mode in self.sector_modes

    def effective_modes(self) -> frozenset[SectorMode]:
        """Return the sector modes this restriction occupies."""
        return frozenset(self.sector_modes) if self.sector_modes else frozenset(SectorMode)


@dataclass(frozen=True)
class SectorModeConfig:
    """Minimum security posture for a sector mode.

    Attributes
    ----------
    mode:
        The sector mode this configuration governs.
    security_level:
        Security posture. ``critical`` and ``top-secret`` sectors never
        auto-allow; every operation requires authority sign-off.
    encryption_standard:
        Minimum encryption standard for operations in this sector.
    audit_level:
        Minimum audit level for operations in this sector.
    required_frameworks:
        Legal frameworks a covering residency policy should certify.
    additional_restrictions:
        Requirements attached as conditions when sign-off is forced.
    data_retention_years:
        Retention period for records produced in this sector.
    """

    mode: SectorMode
    security_level: SecurityLevel = SecurityLevel.STANDARD
    encryption_standard: EncryptionStandard = EncryptionStandard.AES_256
    audit_level: AuditLevel = AuditLevel.BASIC
    required_frameworks: tuple[str, ...] = ()
    additional_restrictions: tuple[str, ...] = ()
    data_retention_years: int = 5

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", _mode(self.mode))
        object.__setattr__(self, "security_level", SecurityLevel(self.security_level))
        object.__setattr__(self, "encryption_standard", EncryptionStandard(self.encryption_standard))
        object.__setattr__(self, "audit_level", AuditLevel(self.audit_level))
        object.__setattr__(self, "required_frameworks", _strings(self.required_frameworks))
        object.__setattr__(self, "additional_restrictions", _strings(self.additional_restrictions))
        if self.data_retention_years < 0:
            raise ValueError(
                f"data_retention_years must be >= 0, got {self.data_retention_years}"
            )

    @property
    def requires_sign_off(self) -> bool:
        """Return True if this sector never auto-allows."""
        return self.security_level >= SecurityLevel.CRITICAL


__all__ = [
    "AuditLevel",
    "DataResidencyPolicy",
    "EncryptionStandard",
    "GeoRestriction",
    "Operation",
    "RestrictionLevel",
    "SectorMode",
    "SectorModeConfig",
    "SecurityLevel",
    "normalise_data_types",
]
