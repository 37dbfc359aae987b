"""Append-only audit log of compliance checks.

Every evaluated check is appended as a ``CHECK_RECORDED`` entry. Records are
never modified: an approver resolving a ``pending-approval`` check appends a
linked ``CHECK_RESOLVED`` entry instead, and :meth:`AuditLog.get` returns
the effective view of the check with the resolution applied. Policy
publications are logged as ``POLICY_PUBLISHED`` entries.

Writes go through a write lock, so the sequence has no gaps and no write is
lost. Backend failures are retried with bounded exponential backoff
(:meth:`EngineConfig.backoff_for`); once retries are exhausted
:class:`~sovereign_compliance.errors.AuditWriteDeferred` is raised and the
log is left unchanged. Readers take a separate state lock that is held only
while the in-memory indexes are updated, so reads never wait on a retrying
writer.
"""
from __future__ import annotations

import datetime
import logging
import threading
import time
from enum import Enum
from typing import Any, Optional, TypeVar, Union

from sovereign_compliance.audit.backends import AuditBackend, InMemoryAuditBackend
from sovereign_compliance.audit.records import (
    ApprovalResolution,
    AuditAction,
    AuditEntry,
    ComplianceCheck,
    new_id,
)
from sovereign_compliance.config import EngineConfig
from sovereign_compliance.errors import (
    AlreadyResolved,
    AuditBackendError,
    AuditWriteDeferred,
    CheckNotFound,
    InvalidRequest,
)
from sovereign_compliance.policy.models import Operation, SectorMode
from sovereign_compliance.verdict import Verdict

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=Enum)

TimeBound = Union[str, datetime.datetime, None]


def _coerce_filter(enum_cls: type[_E], value: Any, name: str) -> Optional[_E]:
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidRequest(
            f"Invalid {name} filter {value!r}. Expected one of: {allowed}."
        ) from exc


def _coerce_time(value: TimeBound, name: str) -> Optional[datetime.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc)
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"Invalid {name} timestamp {value!r}: {exc}") from exc
    return _coerce_time(parsed, name)


class AuditLog:
    """Append-only, thread-safe audit log.

    Parameters
    ----------
    backend:
        Persistence backend. Defaults to an in-memory backend. Existing
        entries are loaded from the backend on construction.
    config:
        Supplies the retry count and backoff schedule for backend writes.
    """

    def __init__(
        self,
        backend: AuditBackend | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._backend = backend if backend is not None else InMemoryAuditBackend()
        self._config = config or EngineConfig()
        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._entries: list[AuditEntry] = []
        self._checks: dict[str, ComplianceCheck] = {}
        self._resolutions: dict[str, ApprovalResolution] = {}
        self._order: list[str] = []
        self._sequence = 0

        for entry in self._backend.load():
            self._apply(entry)
        if self._entries:
            logger.info(
                "Audit log restored %d entries (%d checks) from backend",
                len(self._entries),
                len(self._checks),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, check: ComplianceCheck, details: dict[str, Any] | None = None) -> str:
        """Append a ``CHECK_RECORDED`` entry for ``check``.

        Recording the same ``check_id`` twice is a no-op, so a deferred check
        can be replayed safely.

        Parameters
        ----------
        check:
            The check to record.
        details:
            Optional free-form details stored on the entry.

        Returns
        -------
        str
            The check id.

        Raises
        ------
        AuditWriteDeferred
            If the backend write failed after all retries.
        """
        with self._write_lock:
            with self._state_lock:
                if check.check_id in self._checks:
                    logger.debug("Check %s already recorded; skipping", check.check_id)
                    return check.check_id
                sequence = self._sequence + 1
            entry = AuditEntry(
                sequence=sequence,
                entry_id=new_id("audit"),
                action=AuditAction.CHECK_RECORDED,
                check=check,
                details=dict(details or {}),
            )
            self._persist(entry, check.check_id)
            with self._state_lock:
                self._apply(entry)
        return check.check_id

    def resolve(
        self,
        check_id: str,
        decision: Verdict,
        approver: str = "",
        note: str = "",
    ) -> ComplianceCheck:
        """Resolve a pending check with a terminal decision.

        The state check and the append happen under the write lock, so of
        two concurrent resolutions exactly one succeeds.

        Returns
        -------
        ComplianceCheck
            The effective view of the check after resolution.

        Raises
        ------
        CheckNotFound
            If no check with ``check_id`` was recorded.
        AlreadyResolved
            If the check is not in ``pending-approval``.
        AuditWriteDeferred
            If the resolution could not be persisted; nothing changes.
        """
        with self._write_lock:
            with self._state_lock:
                current = self._effective(check_id)
                sequence = self._sequence + 1
            if current.verdict is not Verdict.PENDING_APPROVAL:
                raise AlreadyResolved(check_id, current.verdict.value)

            resolution = ApprovalResolution(
                resolution_id=new_id("resolution"),
                check_id=check_id,
                decision=decision,
                approver=approver,
                note=note,
            )
            entry = AuditEntry(
                sequence=sequence,
                entry_id=new_id("audit"),
                action=AuditAction.CHECK_RESOLVED,
                resolution=resolution,
            )
            self._persist(entry, check_id)
            with self._state_lock:
                self._apply(entry)
                resolved = self._effective(check_id)
        logger.info(
            "Check %s resolved as %s by %s", check_id, decision.value, approver or "<unknown>"
        )
        return resolved

    def record_publication(self, version: int, description: str = "") -> AuditEntry:
        """Append a ``POLICY_PUBLISHED`` entry for a new snapshot version.

        Raises
        ------
        AuditWriteDeferred
            If the backend write failed after all retries.
        """
        with self._write_lock:
            with self._state_lock:
                sequence = self._sequence + 1
            entry = AuditEntry(
                sequence=sequence,
                entry_id=new_id("audit"),
                action=AuditAction.POLICY_PUBLISHED,
                details={"policy_version": version, "description": description},
            )
            self._persist(entry, f"policy-v{version}")
            with self._state_lock:
                self._apply(entry)
        return entry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def sequence(self) -> int:
        """Sequence number of the latest entry (0 when empty)."""
        with self._state_lock:
            return self._sequence

    def __len__(self) -> int:
        with self._state_lock:
            return len(self._order)

    def get(self, check_id: str) -> ComplianceCheck:
        """Return the effective view of a recorded check.

        Raises
        ------
        CheckNotFound
            If no check with ``check_id`` was recorded.
        """
        with self._state_lock:
            return self._effective(check_id)

    def checks(self) -> list[ComplianceCheck]:
        """Return the effective view of every check, oldest first."""
        with self._state_lock:
            return [self._effective(check_id) for check_id in self._order]

    def entries(self) -> list[AuditEntry]:
        """Return every raw entry in sequence order."""
        with self._state_lock:
            return list(self._entries)

    def query(
        self,
        tenant_id: str | None = None,
        verdict: Verdict | str | None = None,
        sector_mode: SectorMode | str | None = None,
        operation: Operation | str | None = None,
        since: TimeBound = None,
        until: TimeBound = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ComplianceCheck]:
        """Return checks matching every given filter, newest first.

        Parameters
        ----------
        tenant_id:
            Only checks for this tenant.
        verdict:
            Only checks whose effective verdict matches.
        sector_mode:
            Only checks evaluated under this (resolved) sector mode.
        operation:
            Only checks of this operation.
        since, until:
            Inclusive ``checked_at`` bounds, as datetimes or ISO-8601 strings.
        offset:
            Number of matching checks to skip.
        limit:
            Maximum number of checks to return. None returns all.

        Raises
        ------
        InvalidRequest
            If a filter value or the paging parameters are invalid.
        """
        verdict_filter = _coerce_filter(Verdict, verdict, "verdict")
        sector_filter = _coerce_filter(SectorMode, sector_mode, "sector_mode")
        operation_filter = _coerce_filter(Operation, operation, "operation")
        since_bound = _coerce_time(since, "since")
        until_bound = _coerce_time(until, "until")
        if offset < 0:
            raise InvalidRequest(f"offset must be >= 0, got {offset}")
        if limit is not None and limit < 0:
            raise InvalidRequest(f"limit must be >= 0, got {limit}")

        matches: list[ComplianceCheck] = []
        for check in reversed(self.checks()):
            if tenant_id and check.tenant_id != tenant_id:
                continue
            if verdict_filter is not None and check.verdict is not verdict_filter:
                continue
            if sector_filter is not None and check.sector_mode is not sector_filter:
                continue
            if operation_filter is not None and check.operation is not operation_filter:
                continue
            if since_bound is not None or until_bound is not None:
                checked_at = _coerce_time(check.checked_at, "checked_at")
                if since_bound is not None and checked_at < since_bound:
                    continue
                if until_bound is not None and checked_at > until_bound:
                    continue
            matches.append(check)

        end = None if limit is None else offset + limit
        return matches[offset:end]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist(self, entry: AuditEntry, subject: str) -> None:
        attempts = self._config.audit_max_retries + 1
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                self._backend.append(entry)
                return
            except (OSError, AuditBackendError) as exc:
                last_error = exc
                if attempt == attempts:
                    break
                delay = self._config.backoff_for(attempt)
                logger.warning(
                    "Audit write for %s failed (attempt %d/%d): %s; retrying in %.3fs",
                    subject,
                    attempt,
                    attempts,
                    exc,
                    delay,
                )
                if delay > 0:
                    time.sleep(delay)
        raise AuditWriteDeferred(subject, attempts, last_error)

    def _apply(self, entry: AuditEntry) -> None:
        self._entries.append(entry)
        self._sequence = max(self._sequence, entry.sequence)
        if entry.action is AuditAction.CHECK_RECORDED and entry.check is not None:
            check_id = entry.check.check_id
            if check_id not in self._checks:
                self._order.append(check_id)
            self._checks[check_id] = entry.check
        elif entry.action is AuditAction.CHECK_RESOLVED and entry.resolution is not None:
            self._resolutions[entry.resolution.check_id] = entry.resolution

    def _effective(self, check_id: str) -> ComplianceCheck:
        try:
            check = self._checks[check_id]
        except KeyError:
            raise CheckNotFound(check_id) from None
        resolution = self._resolutions.get(check_id)
        return check.with_resolution(resolution) if resolution is not None else check


__all__ = [
    "AuditLog",
]
