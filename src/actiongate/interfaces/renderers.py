"""Human-readable renderings of approval records and audit history."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from actiongate.core.types import ApprovalRecord, ApprovalStatus, AuditLogEntry, utcnow

_PREVIEW_CHARS = 200
_HISTORY_RULE = "─" * 80


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """Time remaining until ``when``: "expired", "<1 min", "45 min", "1 hour", "3 hours"."""
    now = now or utcnow()
    diff_mins = round((when - now).total_seconds() / 60)

    if diff_mins < 0:
        return "expired"
    if diff_mins < 1:
        return "<1 min"
    if diff_mins < 60:
        return f"{diff_mins} min"
    diff_hours = round(diff_mins / 60)
    if diff_hours == 1:
        return "1 hour"
    return f"{diff_hours} hours"


def _truncate(text: str, limit: int = _PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def format_approval(record: ApprovalRecord, verbose: bool = False, now: datetime | None = None) -> str:
    """Short status line, plus details/commands/output when ``verbose``."""
    expiry = ""
    if record.status == ApprovalStatus.PENDING:
        expiry = f" ({format_relative_time(record.expires_at, now)} left)"

    lines = [f"[{record.id}] {record.status.value.upper()}{expiry}", f"  {record.summary}"]

    if verbose:
        if record.details:
            lines.append(f"  Details: {record.details}")
        if record.channel:
            chat = f" ({record.chat_id})" if record.chat_id else ""
            lines.append(f"  Channel: {record.channel}{chat}")
        lines.append("  Commands:")
        lines.extend(f"    $ {cmd}" for cmd in record.commands)
        if record.result:
            lines.append(f"  Result: {_truncate(record.result)}")
        if record.error:
            lines.append(f"  Error: {_truncate(record.error)}")

    return "\n".join(lines)


def format_approval_message(record: ApprovalRecord, now: datetime | None = None) -> str:
    """Chat-ready approval request with reply instructions and expiry."""
    rel_time = format_relative_time(record.expires_at, now)
    expiry_clock = record.expires_at.astimezone().strftime("%I:%M %p").lstrip("0")

    parts = [f"**Approval needed: `{record.id}`**", record.summary]
    if record.details:
        parts.append(record.details)
    parts.append("")
    parts.append(f"Reply `approve {record.id}` or `deny {record.id}`")
    parts.append(f"Expires: {expiry_clock} ({rel_time})")
    return "\n".join(parts)


def format_history(entries: Iterable[AuditLogEntry]) -> str:
    """Fixed-width audit table, one row per entry."""
    rows = [
        "TIME          EVENT      ID     ACTOR          SUMMARY",
        _HISTORY_RULE,
    ]
    for entry in entries:
        time = entry.ts.astimezone().strftime("%b %d %H:%M")
        rows.append(
            f"{time:<13} {entry.event.value:<10} {entry.id[:6]:<6} "
            f"{(entry.actor or '-')[:14]:<14} {entry.summary[:30]}"
        )
    return "\n".join(rows)


__all__ = [
    "format_approval",
    "format_approval_message",
    "format_history",
    "format_relative_time",
]
