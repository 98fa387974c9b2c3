"""
Core Type Definitions
=====================

Centralized type definitions for approval records, audit entries and the
results returned by the lifecycle engine.

Records are persisted with camelCase keys and ISO-8601 UTC timestamps
(``2025-01-01T12:00:00.000Z``) so a stored file reads the same regardless
of which interface wrote it.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ApprovalStatus(str, Enum):
    """Lifecycle states of an approval record."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXECUTED = "executed"
    PARTIAL = "partial"
    FAILED = "failed"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


ALLOWED_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.DENIED,
        ApprovalStatus.EXPIRED,
    }),
    ApprovalStatus.APPROVED: frozenset({
        ApprovalStatus.EXECUTED,
        ApprovalStatus.PARTIAL,
        ApprovalStatus.FAILED,
        ApprovalStatus.EXPIRED,
    }),
}


def can_transition(current: ApprovalStatus, target: ApprovalStatus) -> bool:
    """Return True if ``current -> target`` is a legal status change."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class AuditEvent(str, Enum):
    """Kinds of lifecycle events written to the audit log."""

    PROPOSED = "proposed"
    APPROVED = "approved"
    DENIED = "denied"
    EXECUTED = "executed"
    EXPIRED = "expired"
    CLEANED = "cleaned"

    def __str__(self) -> str:
        return self.value


class ExecutionOutcome(str, Enum):
    """Tri-state result of running an approved record's commands."""

    EXECUTED = "executed"
    PARTIAL = "partial"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def status(self) -> ApprovalStatus:
        return ApprovalStatus(self.value)

    @classmethod
    def classify(cls, succeeded: int, failed: int) -> "ExecutionOutcome":
        if failed == 0:
            return cls.EXECUTED
        if succeeded == 0:
            return cls.FAILED
        return cls.PARTIAL


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def format_timestamp(value: datetime) -> str:
    """Serialize an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_timestamp(value: str | None) -> datetime | None:
    return parse_timestamp(value) if value else None


@dataclass
class ApprovalRecord:
    """
    One proposed action and its full lifecycle state.

    The JSON file written by the record store is the single source of truth
    for a record; there is no separate index.
    """

    id: str
    created_at: datetime
    expires_at: datetime
    summary: str
    commands: list[str]
    status: ApprovalStatus = ApprovalStatus.PENDING
    details: str | None = None
    env: dict[str, str] | None = None
    channel: str | None = None
    chat_id: str | None = None
    proposed_by: str | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    denied_at: datetime | None = None
    denied_by: str | None = None
    executed_at: datetime | None = None
    result: str | None = None
    error: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
            "summary": self.summary,
            "details": self.details,
            "commands": list(self.commands),
            "env": dict(self.env) if self.env is not None else None,
            "channel": self.channel,
            "chatId": self.chat_id,
            "proposedBy": self.proposed_by,
            "status": self.status.value,
            "approvedAt": format_timestamp(self.approved_at) if self.approved_at else None,
            "approvedBy": self.approved_by,
            "deniedAt": format_timestamp(self.denied_at) if self.denied_at else None,
            "deniedBy": self.denied_by,
            "executedAt": format_timestamp(self.executed_at) if self.executed_at else None,
            "result": self.result,
            "error": self.error,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApprovalRecord":
        """
        Build a record from its stored form.

        Raises:
            KeyError, ValueError, TypeError: if the document is not a valid record
        """
        commands = data["commands"]
        if not isinstance(commands, list) or not all(isinstance(c, str) for c in commands):
            raise ValueError("commands must be a list of strings")
        env = data.get("env")
        if env is not None and not isinstance(env, dict):
            raise ValueError("env must be a mapping")
        return cls(
            id=str(data["id"]),
            created_at=parse_timestamp(data["createdAt"]),
            expires_at=parse_timestamp(data["expiresAt"]),
            summary=str(data["summary"]),
            commands=commands,
            status=ApprovalStatus(data["status"]),
            details=data.get("details"),
            env={str(k): str(v) for k, v in env.items()} if env is not None else None,
            channel=data.get("channel"),
            chat_id=data.get("chatId"),
            proposed_by=data.get("proposedBy"),
            approved_at=_optional_timestamp(data.get("approvedAt")),
            approved_by=data.get("approvedBy"),
            denied_at=_optional_timestamp(data.get("deniedAt")),
            denied_by=data.get("deniedBy"),
            executed_at=_optional_timestamp(data.get("executedAt")),
            result=data.get("result"),
            error=data.get("error"),
        )


@dataclass
class AuditLogEntry:
    """Immutable line in the audit log documenting one lifecycle event."""

    ts: datetime
    event: AuditEvent
    id: str
    summary: str
    actor: str | None = None
    channel: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ts": format_timestamp(self.ts),
            "event": self.event.value,
            "id": self.id,
            "summary": self.summary,
            "actor": self.actor,
            "channel": self.channel,
            "details": self.details,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditLogEntry":
        return cls(
            ts=parse_timestamp(data["ts"]),
            event=AuditEvent(data["event"]),
            id=str(data["id"]),
            summary=str(data.get("summary", "")),
            actor=data.get("actor"),
            channel=data.get("channel"),
            details=data.get("details"),
        )


@dataclass
class BatchError:
    """An id that could not be approved or executed during a batch."""

    id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "error": self.error}


@dataclass
class BatchResult:
    """
    Outcome of a batch approve+execute.

    ``approved`` holds every record that reached execution, whatever its
    execution outcome; ``errors`` holds ids rejected before execution.
    """

    approved: list[ApprovalRecord] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)


@dataclass
class ApprovalStats:
    total: int
    by_status: dict[str, int]
    recent_activity: list[AuditLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byStatus": dict(self.by_status),
            "recentActivity": [e.to_dict() for e in self.recent_activity],
        }


__all__ = [
    'ALLOWED_TRANSITIONS',
    'ApprovalRecord',
    'ApprovalStats',
    'ApprovalStatus',
    'AuditEvent',
    'AuditLogEntry',
    'BatchError',
    'BatchResult',
    'ExecutionOutcome',
    'can_transition',
    'format_timestamp',
    'parse_timestamp',
    'utcnow',
]
