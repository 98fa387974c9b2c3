"""
Flat-File Persistence Implementation
====================================

One JSON document per approval record plus a line-delimited JSON audit log,
all under a single directory:

    ~/.actiongate/approvals/
        K7QX.json
        M3ZP.json
        audit.jsonl

There is no locking. Record writes go to a temporary file in the same
directory and are moved into place with ``os.replace``, so a reader sees
either the previous or the new document, never a torn one. Concurrent
writers resolve as last-write-wins.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

from actiongate.core.exceptions import ApprovalStoreError
from actiongate.core.types import ApprovalRecord, AuditLogEntry

from .repositories import ApprovalRepository, AuditLogRepository, normalize_id

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
_PATH_SEPARATORS = ("/", "\\", os.sep)


def _read_record(path: Path) -> ApprovalRecord | None:
    try:
        with open(path, encoding="utf-8") as f:
            return ApprovalRecord.from_dict(json.load(f))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.debug("Skipping unreadable approval file %s: %s", path.name, e)
        return None


class FileApprovalRepository(ApprovalRepository):
    """
    Approval records stored as ``<ID>.json`` files.

    Features:
    - Atomic replace on save (no partially written records)
    - Directory created lazily and idempotently
    - Corrupt files treated as absent on load and skipped on list
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def _ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, approval_id: str) -> Path | None:
        """File for ``approval_id``, or None when the id could escape the directory."""
        normalized = normalize_id(approval_id)
        if not normalized or ".." in normalized or any(sep in normalized for sep in _PATH_SEPARATORS):
            return None
        return self.directory / f"{normalized}{RECORD_SUFFIX}"

    def load(self, approval_id: str) -> ApprovalRecord | None:
        path = self.path_for(approval_id)
        if path is None:
            return None
        return _read_record(path)

    def save(self, record: ApprovalRecord) -> None:
        self._ensure_dir()
        target = self.path_for(record.id)
        if target is None:
            raise ApprovalStoreError(f"Refusing to store approval with unsafe id {record.id!r}")
        fd, tmp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{record.id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, approval_id: str) -> None:
        path = self.path_for(approval_id)
        if path is not None:
            path.unlink(missing_ok=True)

    def exists(self, approval_id: str) -> bool:
        path = self.path_for(approval_id)
        return path is not None and path.exists()

    def iter_records(self) -> Iterator[ApprovalRecord]:
        self._ensure_dir()
        for path in sorted(self.directory.glob(f"*{RECORD_SUFFIX}")):
            if path.name.startswith("."):
                continue
            record = _read_record(path)
            if record is not None:
                yield record


class JsonlAuditLog(AuditLogRepository):
    """Append-only audit log, one JSON object per line."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def append(self, entry: AuditLogEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False) + "\n"
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)

    def read(self, limit: int = 100) -> list[AuditLogEntry]:
        if limit <= 0 or not self.path.exists():
            return []
        entries: list[AuditLogEntry] = []
        with open(self.path, "rb") as f:
            for lineno, raw in enumerate(f, start=1):
                if not raw.strip():
                    continue
                try:
                    entries.append(AuditLogEntry.from_dict(json.loads(raw.decode("utf-8"))))
                except (ValueError, KeyError, TypeError) as e:
                    logger.debug("Skipping malformed audit line %d: %s", lineno, e)
        return list(reversed(entries[-limit:]))
