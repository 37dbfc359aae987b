"""Replays audit writes that were deferred after exhausting their retries."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace

from sovereign_compliance.audit.log import AuditLog
from sovereign_compliance.audit.records import ComplianceCheck
from sovereign_compliance.errors import AuditWriteDeferred

logger = logging.getLogger(__name__)


class AuditReconciler:
    """Queue of deferred audit writes.

    Checks (and policy publications) whose audit write failed are queued
    here. :meth:`reconcile` retries each one against the audit log; items
    that fail again stay queued for the next pass.

    Parameters
    ----------
    audit_log:
        The log the deferred writes belong to.
    """

    def __init__(self, audit_log: AuditLog) -> None:
        self._audit_log = audit_log
        self._lock = threading.Lock()
        self._checks: dict[str, ComplianceCheck] = {}
        self._publications: dict[int, str] = {}

    def defer(self, check: ComplianceCheck) -> None:
        """Queue a check whose audit write was deferred."""
        with self._lock:
            self._checks[check.check_id] = check
        logger.warning("Check %s queued for audit reconciliation", check.check_id)

    def defer_publication(self, version: int, description: str = "") -> None:
        """Queue a policy publication whose audit write was deferred."""
        with self._lock:
            self._publications[version] = description
        logger.warning("Policy version %d queued for audit reconciliation", version)

    def pending(self) -> list[ComplianceCheck]:
        """Return queued checks in the order they were deferred."""
        with self._lock:
            return list(self._checks.values())

    def get(self, check_id: str) -> ComplianceCheck | None:
        """Return the queued check with ``check_id``, or None."""
        with self._lock:
            return self._checks.get(check_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._checks) + len(self._publications)

    def reconcile(self) -> list[str]:
        """Retry every queued write once.

        Reconciled checks are recorded with ``audit_pending`` cleared and a
        ``reconciled`` marker in the entry details.

        Returns
        -------
        list[str]
            Ids of the checks that were written (and ``policy-v<N>`` for
            publications), in queue order.
        """
        with self._lock:
            checks = list(self._checks.values())
            publications = sorted(self._publications.items())

        written: list[str] = []
        for version, description in publications:
            try:
                self._audit_log.record_publication(version, description)
            except AuditWriteDeferred as exc:
                logger.warning("Reconciliation of policy version %d failed: %s", version, exc)
                continue
            with self._lock:
                self._publications.pop(version, None)
            written.append(f"policy-v{version}")

        for check in checks:
            try:
                self._audit_log.record(
                    replace(check, audit_pending=False), details={"reconciled": True}
                )
            except AuditWriteDeferred as exc:
                logger.warning("Reconciliation of check %s failed: %s", check.check_id, exc)
                continue
            with self._lock:
                self._checks.pop(check.check_id, None)
            written.append(check.check_id)

        if written:
            logger.info("Reconciled %d deferred audit write(s)", len(written))
        return written


__all__ = [
    "AuditReconciler",
]
