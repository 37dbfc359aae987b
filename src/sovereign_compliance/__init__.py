"""sovereign-compliance: data-sovereignty compliance engine for sector-regulated operations.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import sovereign_compliance
>>> sovereign_compliance.__version__
'0.1.0'

Service
-------
>>> from sovereign_compliance import create_service
>>> service = create_service()
>>> check = service.check(
...     "cross_border", "SA", "US",
...     sector_mode="civilian", tenant_id="t-1", data_types=["government"],
... )
>>> check.verdict.value
'denied'

Policy
------
>>> from sovereign_compliance import PolicyStore, load_catalogue
>>> store = load_catalogue()
>>> store.version
0

Evaluation
----------
>>> from sovereign_compliance import ComplianceEngine, ComplianceRequest

Audit
-----
>>> from sovereign_compliance import AuditLog, JsonLinesAuditBackend
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from sovereign_compliance.errors import (
    AlreadyResolved,
    AuditBackendError,
    AuditWriteDeferred,
    CheckNotFound,
    ComplianceError,
    ConfigurationError,
    InvalidRequest,
    UnknownSectorMode,
)

# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------
from sovereign_compliance.policy import (
    AuditLevel,
    DataResidencyPolicy,
    EncryptionStandard,
    GeoRestriction,
    JurisdictionMap,
    Operation,
    PolicySnapshot,
    PolicyStore,
    RestrictionLevel,
    SectorMode,
    SectorModeConfig,
    SecurityLevel,
    dump_catalogue,
    load_catalogue,
)

# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
from sovereign_compliance.config import EngineConfig, load_config
from sovereign_compliance.engine import ComplianceEngine, Evaluation
from sovereign_compliance.evaluators import Condition, Severity, Violation, ViolationCode
from sovereign_compliance.request import ComplianceRequest
from sovereign_compliance.verdict import ComplianceResult, Verdict

# ---------------------------------------------------------------------------
# Audit, approval and stats
# ---------------------------------------------------------------------------
from sovereign_compliance.audit import (
    ApprovalResolution,
    AuditEntry,
    AuditLog,
    AuditReconciler,
    ComplianceCheck,
    InMemoryAuditBackend,
    JsonLinesAuditBackend,
)
from sovereign_compliance.approval import ApprovalWorkflow
from sovereign_compliance.stats import ComplianceStats, StatsAggregator

# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
from sovereign_compliance.service import ComplianceService, create_service

__all__ = [
    "__version__",
    # Errors
    "AlreadyResolved",
    "AuditBackendError",
    "AuditWriteDeferred",
    "CheckNotFound",
    "ComplianceError",
    "ConfigurationError",
    "InvalidRequest",
    "UnknownSectorMode",
    # Policy
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
    # Evaluation
    "ComplianceEngine",
    "ComplianceRequest",
    "ComplianceResult",
    "Condition",
    "EngineConfig",
    "Evaluation",
    "Severity",
    "Verdict",
    "Violation",
    "ViolationCode",
    "load_config",
    # Audit
    "ApprovalResolution",
    "AuditEntry",
    "AuditLog",
    "AuditReconciler",
    "ComplianceCheck",
    "InMemoryAuditBackend",
    "JsonLinesAuditBackend",
    # Approval and stats
    "ApprovalWorkflow",
    "ComplianceStats",
    "StatsAggregator",
    # Service
    "ComplianceService",
    "create_service",
]
