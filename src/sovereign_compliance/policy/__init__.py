"""Policy sub-package for sovereign-compliance.

Provides the policy data model, the versioned copy-on-write policy store,
region membership lookup, and the YAML catalogue loader.
"""
from __future__ import annotations

from sovereign_compliance.policy.jurisdiction import JurisdictionMap
from sovereign_compliance.policy.loader import dump_catalogue, load_catalogue
from sovereign_compliance.policy.models import (
    AuditLevel,
    DataResidencyPolicy,
    EncryptionStandard,
    GeoRestriction,
    Operation,
    RestrictionLevel,
    SectorMode,
    SectorModeConfig,
    SecurityLevel,
)
from sovereign_compliance.policy.store import PolicySnapshot, PolicyStore

__all__ = [
    "AuditLevel",
    "DataResidencyPolicy",
    "EncryptionStandard",
    "GeoRestriction",
    "JurisdictionMap",
    "Operation",
    "PolicySnapshot",
    "PolicyStore",
    "RestrictionLevel",
    "SectorMode",
    "SectorModeConfig",
    "SecurityLevel",
    "dump_catalogue",
    "load_catalogue",
]
