"""Exception taxonomy for sovereign-compliance.

Every error raised by the package derives from :class:`ComplianceError`.
Rule mismatches during evaluation are never errors: they are reported as
:class:`~sovereign_compliance.evaluators.base.Violation` data on the result.
"""
from __future__ import annotations


class ComplianceError(Exception):
    """Base class for all sovereign-compliance errors."""


class ConfigurationError(ComplianceError, ValueError):
    """A policy, restriction or sector configuration conflicts with the store.

    Raised at write time by the policy store and the catalogue loader; a
    configuration error never reaches evaluation.
    """


class UnknownSectorMode(ComplianceError, ValueError):
    """A request named a sector mode that is not one of the known modes.

    Evaluation catches this, logs a warning and falls back to the civilian
    configuration.
    """

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Unknown sector mode {value!r}. Falling back to civilian defaults."
        )
        self.value = value


class InvalidRequest(ComplianceError, ValueError):
    """A compliance request is malformed and was rejected before evaluation.

    No audit record is created for an invalid request.
    """


class AlreadyResolved(ComplianceError):
    """Approval was attempted on a check that is not pending approval."""

    def __init__(self, check_id: str, current: str) -> None:
        super().__init__(
            f"Check {check_id!r} is already resolved with result {current!r}. "
            "Only checks in 'pending-approval' can be approved or denied."
        )
        self.check_id = check_id
        self.current = current


class CheckNotFound(ComplianceError, KeyError):
    """No compliance check with the given id exists in the audit log."""

    def __init__(self, check_id: str) -> None:
        super().__init__(f"No compliance check found for check_id={check_id!r}.")
        self.check_id = check_id

    def __str__(self) -> str:
        return str(self.args[0])


class AuditBackendError(ComplianceError):
    """An audit backend failed to persist an entry."""


class AuditWriteDeferred(ComplianceError):
    """Audit persistence failed after all retries.

    Non-fatal: the verdict is still returned to the caller, flagged
    ``audit_pending``, and the check is queued for reconciliation.
    """

    def __init__(self, check_id: str, attempts: int, cause: BaseException | None = None) -> None:
        super().__init__(
            f"Audit write for check {check_id!r} deferred after {attempts} attempt(s)"
            + (f": {cause}" if cause is not None else ".")
        )
        self.check_id = check_id
        self.attempts = attempts
        self.cause = cause


__all__ = [
    "AlreadyResolved",
    "AuditBackendError",
    "AuditWriteDeferred",
    "CheckNotFound",
    "ComplianceError",
    "ConfigurationError",
    "InvalidRequest",
    "UnknownSectorMode",
]
