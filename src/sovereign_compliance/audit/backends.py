"""Audit log persistence backends.

A backend only stores and reloads :class:`AuditEntry` records; ordering,
locking and retries belong to :class:`~sovereign_compliance.audit.log.AuditLog`.
Backends signal write failures with :class:`OSError` or
:class:`~sovereign_compliance.errors.AuditBackendError`.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from pydantic import ValidationError

from sovereign_compliance import schemas
from sovereign_compliance.audit.records import AuditEntry
from sovereign_compliance.errors import AuditBackendError

logger = logging.getLogger(__name__)


class AuditBackend:
    """Protocol-like base for audit backends.

    Subclass this and implement :meth:`append` and :meth:`load` to persist
    audit entries to a real store.
    """

    def append(self, entry: AuditEntry) -> None:
        """Durably persist one entry.

        Parameters
        ----------
        entry:
            The entry to persist.

        Raises
        ------
        OSError, AuditBackendError
            If the entry could not be persisted.
        """
        raise NotImplementedError

    def load(self) -> list[AuditEntry]:
        """Return every persisted entry in append order."""
        raise NotImplementedError


class InMemoryAuditBackend(AuditBackend):
    """Keeps entries in a Python list. Nothing survives the process."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def append(self, entry: AuditEntry) -> None:
        self._entries.append(entry)

    def load(self) -> list[AuditEntry]:
        return list(self._entries)


class JsonLinesAuditBackend(AuditBackend):
    """Appends one JSON object per line and fsyncs after each write.

    A write that fails part-way is truncated back to the previous end of
    file, and a torn final line left by a crash is dropped on load and
    trimmed before the next append. Corruption anywhere else is an error.

    Parameters
    ----------
    path:
        The JSON-lines file. Parent directories are created on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Location of the JSON-lines file."""
        return self._path

    def append(self, entry: AuditEntry) -> None:
        data = (schemas.AuditEntryModel.from_record(entry).to_json_line() + "\n").encode("utf-8")
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_RDWR | os.O_CREAT | os.O_APPEND, 0o644)
            try:
                offset = _trim_torn_tail(fd, self._path)
                try:
                    written = 0
                    while written < len(data):
                        written += os.write(fd, data[written:])
                    os.fsync(fd)
                except OSError:
                    os.ftruncate(fd, offset)
                    raise
            finally:
                os.close(fd)

    def load(self) -> list[AuditEntry]:
        """Read the file back.

        An unparseable final line is a write torn by a crash; it is skipped
        with a warning.

        Raises
        ------
        AuditBackendError
            If any other line is not a valid audit entry.
        """
        if not self._path.exists():
            return []
        with self._lock, self._path.open("r", encoding="utf-8") as handle:
            lines = [
                (line_number, line.strip())
                for line_number, line in enumerate(handle, start=1)
                if line.strip()
            ]
        entries: list[AuditEntry] = []
        for index, (line_number, line) in enumerate(lines):
            try:
                model = schemas.AuditEntryModel.from_json_line(line)
            except ValidationError as exc:
                if index == len(lines) - 1:
                    logger.warning(
                        "Skipping torn audit entry at %s:%d", self._path, line_number
                    )
                    break
                raise AuditBackendError(
                    f"Corrupt audit entry at {self._path}:{line_number}: {exc}"
                ) from exc
            entries.append(model.to_record())
        logger.debug("Loaded %d audit entries from %s", len(entries), self._path)
        return entries


def _trim_torn_tail(fd: int, path: Path) -> int:
    """Terminate or cut an unterminated final line of ``fd``; return the new size."""
    size = os.lseek(fd, 0, os.SEEK_END)
    end = size
    while end > 0:
        start = max(0, end - 4096)
        os.lseek(fd, start, os.SEEK_SET)
        chunk = os.read(fd, end - start)
        newline = chunk.rfind(b"\n")
        if newline == len(chunk) - 1 and end == size:
            return size
        if newline != -1:
            end = start + newline + 1
            break
        end = start
    if end == size:
        return size

    os.lseek(fd, end, os.SEEK_SET)
    tail = os.read(fd, size - end)
    try:
        schemas.AuditEntryModel.from_json_line(tail.decode("utf-8"))
    except (UnicodeDecodeError, ValidationError):
        logger.warning("Truncating torn audit entry at end of %s", path)
        os.ftruncate(fd, end)
        return end
    os.write(fd, b"\n")
    return size + 1


__all__ = [
    "AuditBackend",
    "InMemoryAuditBackend",
    "JsonLinesAuditBackend",
]
