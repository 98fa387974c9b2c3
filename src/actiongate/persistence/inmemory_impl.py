"""
In-Memory Persistence Implementation
====================================

Process-local approval store and audit log with the same semantics as the
flat-file backend. Records are deep-copied on the way in and out so callers
cannot mutate stored state behind the repository's back.

Limitations:
- Not persistent (records lost on restart)
- Single process only
"""

import copy
import logging
import threading
from collections.abc import Iterator

from actiongate.core.types import ApprovalRecord, AuditLogEntry

from .repositories import ApprovalRepository, AuditLogRepository, normalize_id

logger = logging.getLogger(__name__)


class InMemoryApprovalRepository(ApprovalRepository):
    """Dict-backed approval records keyed by normalized id."""

    def __init__(self) -> None:
        self._records: dict[str, ApprovalRecord] = {}
        self._lock = threading.Lock()

    def load(self, approval_id: str) -> ApprovalRecord | None:
        with self._lock:
            record = self._records.get(normalize_id(approval_id))
            return copy.deepcopy(record) if record else None

    def save(self, record: ApprovalRecord) -> None:
        with self._lock:
            self._records[normalize_id(record.id)] = copy.deepcopy(record)

    def delete(self, approval_id: str) -> None:
        with self._lock:
            self._records.pop(normalize_id(approval_id), None)

    def exists(self, approval_id: str) -> bool:
        with self._lock:
            return normalize_id(approval_id) in self._records

    def iter_records(self) -> Iterator[ApprovalRecord]:
        with self._lock:
            snapshot = [copy.deepcopy(r) for r in self._records.values()]
        yield from snapshot

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAuditLog(AuditLogRepository):
    """List-backed append-only audit log."""

    def __init__(self) -> None:
        self._entries: list[AuditLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: AuditLogEntry) -> None:
        with self._lock:
            self._entries.append(copy.deepcopy(entry))

    def read(self, limit: int = 100) -> list[AuditLogEntry]:
        if limit <= 0:
            return []
        with self._lock:
            return [copy.deepcopy(e) for e in reversed(self._entries[-limit:])]
