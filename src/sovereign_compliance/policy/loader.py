"""YAML policy catalogue loader.

Builds a :class:`~sovereign_compliance.policy.store.PolicyStore` from a YAML
catalogue with three top-level sections: ``policies``, ``geo_restrictions``
and ``sector_modes``. A default catalogue is embedded so the engine works
without an external file.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Union

import yaml

from sovereign_compliance.errors import ConfigurationError, UnknownSectorMode
from sovereign_compliance.policy.models import (
    DataResidencyPolicy,
    GeoRestriction,
    SectorModeConfig,
)
from sovereign_compliance.policy.store import PolicySnapshot, PolicyStore

# Default catalogue embedded as a YAML string so the engine works without
# an external file.
DEFAULT_CATALOGUE_YAML = """\
version: "1.0"
policies:
  - id: residency-eg
    name: Egypt Data Protection
    region: EGYPT
    allowed_countries: [EG, SA, AE]
    data_types: [personal, financial, health]
    encryption_required: true
    local_storage_only: false
    cross_border_transfer_allowed: true
    cross_border_conditions: ["Consent required", "Adequate protection"]
    frameworks: [PDPA, ISO27001]

  - id: residency-eu
    name: EU GDPR Compliance
    region: EU
    data_types: [personal, health, biometric]
    encryption_required: true
    local_storage_only: false
    cross_border_transfer_allowed: true
    cross_border_conditions:
      - "Adequacy decision"
      - "Standard contractual clauses"
      - "Binding corporate rules"
    frameworks: [GDPR]

  - id: residency-gcc
    name: GCC Data Sovereignty
    region: GCC
    allowed_countries: [SA, AE, QA, KW, BH, OM]
    data_types: [personal, financial, government, health]
    encryption_required: true
    local_storage_only: true
    cross_border_transfer_allowed: true
    cross_border_conditions: ["Within GCC only", "Encryption required"]
    frameworks: [PDPA, ISO27001]

  - id: residency-sa
    name: Saudi Arabia Data Localization
    region: SAUDI_ARABIA
    allowed_countries: [SA]
    data_types: [government, military, critical-infrastructure, citizen-data]
    encryption_required: true
    local_storage_only: true
    cross_border_transfer_allowed: false
    frameworks: [PDPA, ISO27001, NIST]

geo_restrictions:
  - id: geo-ae
    country_code: AE
    restriction_level: none
    sector_modes: [civilian, government, security]
  - id: geo-eg
    country_code: EG
    restriction_level: none
    sector_modes: [civilian, government, military, security]
  - id: geo-sa
    country_code: SA
    restriction_level: none

sector_modes:
  - mode: civilian
    security_level: standard
    encryption_standard: AES-256
    audit_level: basic
    required_frameworks: [ISO27001]
    data_retention_years: 5
  - mode: government
    security_level: elevated
    encryption_standard: AES-256-GCM
    audit_level: detailed
    required_frameworks: [ISO27001, NIST, GOVERNMENT]
    additional_restrictions: ["No foreign access", "Citizen data only"]
    data_retention_years: 10
  - mode: military
    # high rather than top-secret: military checks are not forced to sign-off.
    security_level: high
    encryption_standard: FIPS-140-3
    audit_level: forensic
    required_frameworks: [ISO27001, NIST, MILITARY]
    additional_restrictions:
      - "Classified personnel only"
      - "Air-gapped networks"
      - "No cloud storage"
      - "Hardware encryption required"
    data_retention_years: 25
  - mode: security
    security_level: critical
    encryption_standard: FIPS-140-3
    audit_level: forensic
    required_frameworks: [ISO27001, NIST, GOVERNMENT]
    additional_restrictions: ["Vetted personnel only", "Secure facilities", "No external access"]
    data_retention_years: 20
  - mode: critical-infrastructure
    # critical rather than high: every operation needs authority sign-off.
    security_level: critical
    encryption_standard: AES-256-GCM
    audit_level: comprehensive
    required_frameworks: [ISO27001, NIST, SOC2]
    additional_restrictions: ["Redundant systems", "Fail-safe operations", "24/7 monitoring"]
    data_retention_years: 15
"""


def _list(entry: dict[str, Any], key: str) -> list[Any]:
    value = entry.get(key) or []
    if not isinstance(value, list):
        raise ConfigurationError(f"Catalogue field {key!r} must be a list, got {value!r}.")
    return value


def catalogue_from_dict(data: Any) -> PolicyStore:
    """Build a PolicyStore from a parsed catalogue mapping.

    Parameters
    ----------
    data:
        Mapping with optional ``policies``, ``geo_restrictions`` and
        ``sector_modes`` lists.

    Returns
    -------
    PolicyStore
        A store whose initial snapshot holds the catalogue.

    Raises
    ------
    ConfigurationError
        If the catalogue is malformed or violates a store invariant.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Policy catalogue must be a mapping at the top level.")

    try:
        policies = [
            DataResidencyPolicy(
                policy_id=entry["id"],
                region=entry["region"],
                name=entry.get("name", ""),
                allowed_countries=tuple(_list(entry, "allowed_countries")),
                blocked_countries=tuple(_list(entry, "blocked_countries")),
                data_types=tuple(_list(entry, "data_types")),
                encryption_required=bool(entry.get("encryption_required", False)),
                local_storage_only=bool(entry.get("local_storage_only", False)),
                cross_border_transfer_allowed=bool(
                    entry.get("cross_border_transfer_allowed", True)
                ),
                cross_border_conditions=tuple(_list(entry, "cross_border_conditions")),
                frameworks=tuple(_list(entry, "frameworks")),
                description=entry.get("description", ""),
                enabled=bool(entry.get("enabled", True)),
            )
            for entry in data.get("policies") or []
        ]
        restrictions = [
            GeoRestriction(
                restriction_id=entry["id"],
                country_code=entry["country_code"],
                restriction_level=entry.get("restriction_level", "none"),
                sector_modes=tuple(_list(entry, "sector_modes")),
                blocked_operations=tuple(_list(entry, "blocked_operations")),
                special_conditions=tuple(_list(entry, "special_conditions")),
                enabled=bool(entry.get("enabled", True)),
            )
            for entry in data.get("geo_restrictions") or []
        ]
        sector_configs = [
            SectorModeConfig(
                mode=entry["mode"],
                security_level=entry.get("security_level", "standard"),
                encryption_standard=entry.get("encryption_standard", "AES-256"),
                audit_level=entry.get("audit_level", "basic"),
                required_frameworks=tuple(_list(entry, "required_frameworks")),
                additional_restrictions=tuple(_list(entry, "additional_restrictions")),
                data_retention_years=int(entry.get("data_retention_years", 5)),
            )
            for entry in data.get("sector_modes") or []
        ]
    except ConfigurationError:
        raise
    except KeyError as exc:
        raise ConfigurationError(f"Catalogue entry is missing required field {exc}.") from exc
    except (TypeError, ValueError, UnknownSectorMode) as exc:
        raise ConfigurationError(f"Invalid catalogue entry: {exc}") from exc

    return PolicyStore(policies, restrictions, sector_configs)


def load_catalogue(source: Union[str, Path, None] = None) -> PolicyStore:
    """Load a PolicyStore from a YAML file, a YAML string, or the default catalogue.

    Parameters
    ----------
    source:
        Path to a YAML catalogue file, a YAML string, or None to use the
        built-in default catalogue.

    Returns
    -------
    PolicyStore
        The loaded store.

    Raises
    ------
    ConfigurationError
        If the YAML cannot be parsed or the catalogue is invalid.
    """
    if source is None:
        text = DEFAULT_CATALOGUE_YAML
    elif isinstance(source, Path):
        text = source.read_text(encoding="utf-8")
    else:
        # A string may be a file path or raw YAML; try the file first.
        path = Path(source)
        text = path.read_text(encoding="utf-8") if _is_file(path) else source

    try:
        data = yaml.safe_load(io.StringIO(text))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Policy catalogue is not valid YAML: {exc}") from exc
    return catalogue_from_dict(data)


def dump_catalogue(snapshot: PolicySnapshot) -> str:
    """Serialise a snapshot back to catalogue YAML.

    The output can be passed to :func:`load_catalogue` to rebuild an
    equivalent store.
    """
    data = {
        "version": "1.0",
        "policies": [
            {
                "id": p.policy_id,
                "name": p.name,
                "region": p.region,
                "allowed_countries": list(p.allowed_countries),
                "blocked_countries": list(p.blocked_countries),
                "data_types": list(p.data_types),
                "encryption_required": p.encryption_required,
                "local_storage_only": p.local_storage_only,
                "cross_border_transfer_allowed": p.cross_border_transfer_allowed,
                "cross_border_conditions": list(p.cross_border_conditions),
                "frameworks": list(p.frameworks),
                "description": p.description,
                "enabled": p.enabled,
            }
            for p in snapshot.policies
        ],
        "geo_restrictions": [
            {
                "id": r.restriction_id,
                "country_code": r.country_code,
                "restriction_level": r.restriction_level.value,
                "sector_modes": [m.value for m in r.sector_modes],
                "blocked_operations": [op.value for op in r.blocked_operations],
                "special_conditions": list(r.special_conditions),
                "enabled": r.enabled,
            }
            for r in snapshot.restrictions
        ],
        "sector_modes": [
            {
                "mode": c.mode.value,
                "security_level": c.security_level.value,
                "encryption_standard": c.encryption_standard.value,
                "audit_level": c.audit_level.value,
                "required_frameworks": list(c.required_frameworks),
                "additional_restrictions": list(c.additional_restrictions),
                "data_retention_years": c.data_retention_years,
            }
            for c in snapshot.sector_configs
        ],
    }
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def _is_file(path: Path) -> bool:
    # Long inline YAML strings can exceed the OS path length limit.
    try:
        return path.is_file()
    except OSError:
        return False


__all__ = [
    "DEFAULT_CATALOGUE_YAML",
    "catalogue_from_dict",
    "dump_catalogue",
    "load_catalogue",
]
