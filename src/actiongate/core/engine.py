"""
Approval Lifecycle Engine
=========================

State machine for human-gated actions:

    pending  -> approved | denied | expired
    approved -> executed | partial | failed | expired

Every other status is terminal; terminal records are only ever deleted by
``clean``. Expiry is lazy: it is detected and persisted when a record is
listed or an approval is attempted, never by a timer.

Each mutating operation persists the record first and appends the audit
entry second. An audit write failure is logged and counted but never undoes
the record change, so an execution that already had side effects is never
lost from the record store.
"""

from __future__ import annotations

import secrets
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any, Literal

from actiongate.core.exceptions import (
    ActionGateError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
    ApprovalStoreError,
    InvalidTransitionError,
)
from actiongate.core.structured_logger import get_logger
from actiongate.core.types import (
    ApprovalRecord,
    ApprovalStats,
    ApprovalStatus,
    AuditEvent,
    AuditLogEntry,
    BatchError,
    BatchResult,
    can_transition,
    format_timestamp,
    utcnow,
)
from actiongate.execution.command_runner import CommandRunner
from actiongate.observability.metrics import ApprovalMetrics
from actiongate.persistence.repositories import (
    ApprovalRepository,
    AuditLogRepository,
    normalize_id,
)

logger = get_logger("ApprovalEngine")

# No I/O/0/1: ids are read aloud and typed back from chat.
ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ID_LENGTH = 4
MAX_ID_ATTEMPTS = 100

DEFAULT_TTL = timedelta(hours=2)
DEFAULT_CLEAN_DAYS = 7
DEFAULT_RECENT_ACTIVITY = 20


def generate_id() -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


class ApprovalEngine:
    """
    Owns every validity and transition rule of the approval lifecycle.

    Args:
        repository: Record store
        audit_log: Append-only audit log
        runner: Command runner used by ``execute``
        metrics: Optional Prometheus collector
        default_ttl: Approval window used when ``propose`` gets no ttl
        clock: Returns the current aware UTC datetime
        id_generator: Produces candidate ids (collisions are retried)
    """

    def __init__(
        self,
        repository: ApprovalRepository,
        audit_log: AuditLogRepository,
        runner: CommandRunner | None = None,
        metrics: ApprovalMetrics | None = None,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utcnow,
        id_generator: Callable[[], str] = generate_id,
    ) -> None:
        self.repository = repository
        self.audit_log = audit_log
        self.metrics = metrics
        self.runner = runner or CommandRunner(metrics=metrics)
        self.default_ttl = default_ttl
        self.clock = clock
        self.id_generator = id_generator

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _new_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = normalize_id(self.id_generator())
            if not self.repository.exists(candidate):
                return candidate
        raise ApprovalStoreError(
            f"Could not allocate a free approval id after {MAX_ID_ATTEMPTS} attempts",
            details={"stored": len(self.repository.list(include_all=True, now=self.clock()))},
        )

    def _require(self, approval_id: str) -> ApprovalRecord:
        record = self.repository.load(approval_id)
        if record is None:
            raise ApprovalNotFoundError(normalize_id(approval_id))
        return record

    @staticmethod
    def _transition(record: ApprovalRecord, target: ApprovalStatus) -> None:
        if not can_transition(record.status, target):
            raise InvalidTransitionError(
                record.id,
                record.status.value,
                f"Approval {record.id} cannot move from {record.status.value} to {target.value}",
            )
        record.status = target

    def _audit(
        self,
        event: AuditEvent,
        record_id: str,
        summary: str,
        ts: datetime | None = None,
        actor: str | None = None,
        channel: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditLogEntry(
            ts=ts or self.clock(),
            event=event,
            id=record_id,
            summary=summary,
            actor=actor,
            channel=channel,
            details=details,
        )
        try:
            self.audit_log.append(entry)
        except OSError as e:
            logger.error(
                "Audit log write failed; record change kept",
                event=event.value,
                approval_id=record_id,
                error=str(e),
            )
            if self.metrics is not None:
                self.metrics.record_audit_failure()
            return
        if self.metrics is not None:
            self.metrics.record_event(event.value)

    # -------------------------------------------------------------------------
    # Store pass-throughs
    # -------------------------------------------------------------------------

    def list(self, include_all: bool = False) -> list[ApprovalRecord]:
        return self.repository.list(include_all=include_all, now=self.clock())

    def load(self, approval_id: str) -> ApprovalRecord | None:
        return self.repository.load(approval_id)

    def delete(self, approval_id: str) -> None:
        self.repository.delete(approval_id)

    def read_audit_log(self, limit: int = 100) -> list[AuditLogEntry]:
        return self.audit_log.read(limit)

    # -------------------------------------------------------------------------
    # Lifecycle operations
    # -------------------------------------------------------------------------

    def propose(
        self,
        summary: str,
        commands: Sequence[str],
        *,
        details: str | None = None,
        ttl: timedelta | None = None,
        env: Mapping[str, str] | None = None,
        channel: str | None = None,
        chat_id: str | None = None,
        proposed_by: str | None = None,
    ) -> ApprovalRecord:
        """Create a pending record. ``commands`` is assumed non-empty."""
        now = self.clock()
        record = ApprovalRecord(
            id=self._new_id(),
            created_at=now,
            expires_at=now + (ttl if ttl is not None else self.default_ttl),
            summary=summary,
            commands=list(commands),
            status=ApprovalStatus.PENDING,
            details=details,
            env=dict(env) if env is not None else None,
            channel=channel,
            chat_id=chat_id,
            proposed_by=proposed_by,
        )
        self.repository.save(record)
        logger.info(
            "Approval proposed",
            approval_id=record.id,
            command_count=len(record.commands),
            actor=proposed_by,
            expires_at=format_timestamp(record.expires_at),
        )
        self._audit(
            AuditEvent.PROPOSED,
            record.id,
            record.summary,
            ts=record.created_at,
            actor=proposed_by,
            channel=channel,
            details={"commands": list(record.commands), "expiresAt": format_timestamp(record.expires_at)},
        )
        return record

    def approve(self, approval_id: str, approved_by: str | None = None) -> ApprovalRecord:
        """
        Approve a pending record.

        Raises:
            ApprovalNotFoundError: no such record
            InvalidTransitionError: record is not pending
            ApprovalExpiredError: expiry has passed; the record is now ``expired``
        """
        record = self._require(approval_id)
        if record.status != ApprovalStatus.PENDING:
            raise InvalidTransitionError(
                record.id,
                record.status.value,
                f"Approval {record.id} is {record.status.value}, not pending",
            )

        now = self.clock()
        if record.is_expired(now):
            self._transition(record, ApprovalStatus.EXPIRED)
            self.repository.save(record)
            logger.warning("Approval attempted after expiry", approval_id=record.id, actor=approved_by)
            self._audit(AuditEvent.EXPIRED, record.id, record.summary, ts=now)
            raise ApprovalExpiredError(record.id)

        self._transition(record, ApprovalStatus.APPROVED)
        record.approved_at = now
        record.approved_by = approved_by
        self.repository.save(record)
        logger.info("Approval approved", approval_id=record.id, actor=approved_by)
        self._audit(
            AuditEvent.APPROVED,
            record.id,
            record.summary,
            ts=now,
            actor=approved_by,
            channel=record.channel,
        )
        return record

    def deny(self, approval_id: str, denied_by: str | None = None) -> ApprovalRecord:
        """Deny a pending record. Allowed even past expiry."""
        record = self._require(approval_id)
        if record.status != ApprovalStatus.PENDING:
            raise InvalidTransitionError(
                record.id,
                record.status.value,
                f"Approval {record.id} is {record.status.value}, not pending",
            )

        now = self.clock()
        self._transition(record, ApprovalStatus.DENIED)
        record.denied_at = now
        record.denied_by = denied_by
        self.repository.save(record)
        logger.info("Approval denied", approval_id=record.id, actor=denied_by)
        self._audit(
            AuditEvent.DENIED,
            record.id,
            record.summary,
            ts=now,
            actor=denied_by,
            channel=record.channel,
        )
        return record

    def execute(self, approval_id: str) -> ApprovalRecord:
        """
        Run an approved record's commands.

        The resulting status is ``executed``, ``partial`` or ``failed``;
        command failures are captured on the record, not raised.
        """
        record = self._require(approval_id)
        if record.status != ApprovalStatus.APPROVED:
            raise InvalidTransitionError(
                record.id,
                record.status.value,
                f"Approval {record.id} is {record.status.value}, must be approved first",
            )

        report = self.runner.run(record.commands, record.env)

        self._transition(record, report.outcome.status)
        record.executed_at = self.clock()
        record.result = report.result_text
        record.error = report.error_text
        self.repository.save(record)
        logger.info(
            "Approval executed",
            approval_id=record.id,
            outcome=report.outcome.value,
            command_count=len(record.commands),
        )
        if self.metrics is not None:
            self.metrics.record_execution(report.outcome.value)
        self._audit(
            AuditEvent.EXECUTED,
            record.id,
            record.summary,
            ts=record.executed_at,
            actor=record.approved_by,
            channel=record.channel,
            details={
                "commandCount": len(record.commands),
                "hasErrors": report.has_errors,
                "outcome": report.outcome.value,
            },
        )
        return record

    def approve_and_execute(self, approval_id: str, actor: str | None = None) -> ApprovalRecord:
        approved = self.approve(approval_id, actor)
        return self.execute(approved.id)

    def batch(
        self,
        approval_ids: Sequence[str] | Literal["all"],
        actor: str | None = None,
    ) -> BatchResult:
        """
        Approve and execute several records, isolating failures per id.

        ``"all"`` expands to the currently pending ids, newest first.
        """
        if isinstance(approval_ids, str):
            if approval_ids.strip().lower() == "all":
                to_process = [r.id for r in self.list(include_all=False)]
            else:
                to_process = [approval_ids]
        else:
            to_process = list(approval_ids)

        result = BatchResult()
        for approval_id in to_process:
            try:
                result.approved.append(self.approve_and_execute(approval_id, actor))
            except ActionGateError as e:
                logger.warning("Batch item rejected", approval_id=approval_id, error=e.message)
                result.errors.append(BatchError(id=approval_id, error=e.message))
            except Exception as e:
                logger.error(
                    "Batch item failed",
                    approval_id=approval_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.errors.append(BatchError(id=approval_id, error=str(e)))

        logger.info(
            "Batch processed",
            requested=len(to_process),
            processed=len(result.approved),
            errors=len(result.errors),
            actor=actor,
        )
        return result

    def clean(self, older_than_days: float = DEFAULT_CLEAN_DAYS) -> int:
        """
        Delete non-pending records created before ``now - older_than_days``.

        Pending records are never deleted. Returns the number removed.
        """
        now = self.clock()
        cutoff = now - timedelta(days=older_than_days)
        cleaned_ids: list[str] = []

        for record in self.list(include_all=True):
            if record.status != ApprovalStatus.PENDING and record.created_at < cutoff:
                self.repository.delete(record.id)
                cleaned_ids.append(record.id)

        if cleaned_ids:
            removed = len(cleaned_ids)
            logger.info("Old approvals cleaned", count=removed, older_than_days=older_than_days)
            self._audit(
                AuditEvent.CLEANED,
                ",".join(cleaned_ids),
                f"Cleaned {removed} old approval(s)",
                ts=now,
                details={"count": removed, "olderThanDays": older_than_days},
            )
        return len(cleaned_ids)

    def stats(self, recent: int = DEFAULT_RECENT_ACTIVITY) -> ApprovalStats:
        records = self.list(include_all=True)
        by_status = Counter(r.status.value for r in records)
        return ApprovalStats(
            total=len(records),
            by_status=dict(by_status),
            recent_activity=self.read_audit_log(recent),
        )
