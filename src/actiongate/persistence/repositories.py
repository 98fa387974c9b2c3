"""
Abstract Repository Interfaces
================================

Contracts for approval record and audit log persistence.
The lifecycle engine only talks to these interfaces, so the flat-file
backend can be swapped for the in-memory one (tests) or another store.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from actiongate.core.types import (
    ApprovalRecord,
    ApprovalStatus,
    AuditLogEntry,
    utcnow,
)


def normalize_id(approval_id: str) -> str:
    """Canonical form of a user-typed approval id."""
    return approval_id.strip().upper()


class ApprovalRepository(ABC):
    """
    Abstract interface for approval record persistence.

    Implementations:
    - FileApprovalRepository: one JSON document per record
    - InMemoryApprovalRepository: process-local dict, for tests
    """

    @abstractmethod
    def load(self, approval_id: str) -> ApprovalRecord | None:
        """Load a record by id; unreadable records count as absent"""
        pass

    @abstractmethod
    def save(self, record: ApprovalRecord) -> None:
        """Persist the full record, replacing any prior version"""
        pass

    @abstractmethod
    def delete(self, approval_id: str) -> None:
        """Remove a record; no-op if it does not exist"""
        pass

    @abstractmethod
    def exists(self, approval_id: str) -> bool:
        """Return True if a record is stored under this id"""
        pass

    @abstractmethod
    def iter_records(self) -> Iterable[ApprovalRecord]:
        """Yield every readable stored record, in no particular order"""
        pass

    def list(self, include_all: bool = False, now: datetime | None = None) -> list[ApprovalRecord]:
        """
        List records, newest first.

        Pending records whose expiry has passed are rewritten to ``expired``
        before the inclusion decision, so they never show up as pending.

        Args:
            include_all: Include non-pending records
            now: Reference time for the expiry check (defaults to current UTC time)
        """
        now = now or utcnow()
        records = []
        for record in self.iter_records():
            if record.status == ApprovalStatus.PENDING and record.is_expired(now):
                record.status = ApprovalStatus.EXPIRED
                self.save(record)
            if include_all or record.status == ApprovalStatus.PENDING:
                records.append(record)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records


class AuditLogRepository(ABC):
    """
    Abstract interface for the append-only audit log.

    Entries are never updated or removed.
    """

    @abstractmethod
    def append(self, entry: AuditLogEntry) -> None:
        """Append one entry to the end of the log"""
        pass

    @abstractmethod
    def read(self, limit: int = 100) -> list[AuditLogEntry]:
        """Return up to ``limit`` most recent entries, most recent first"""
        pass
