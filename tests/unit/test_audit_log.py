"""Tests for actiongate.persistence — JSONL audit log"""

from datetime import UTC, datetime, timedelta

from actiongate.core.types import AuditEvent, AuditLogEntry
from actiongate.persistence import InMemoryAuditLog, JsonlAuditLog

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)


def _entry(n: int, event=AuditEvent.PROPOSED) -> AuditLogEntry:
    return AuditLogEntry(ts=NOW + timedelta(seconds=n), event=event, id=f"ID{n:02d}", summary=f"entry {n}")


class TestJsonlAuditLog:
    def test_read_missing_file_is_empty(self, tmp_path):
        assert JsonlAuditLog(tmp_path / "audit.jsonl").read() == []

    def test_append_creates_parent_directory(self, tmp_path):
        log = JsonlAuditLog(tmp_path / "nested" / "audit.jsonl")
        log.append(_entry(1))
        assert (tmp_path / "nested" / "audit.jsonl").exists()

    def test_one_json_object_per_line(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = JsonlAuditLog(path)
        log.append(_entry(1))
        log.append(_entry(2, AuditEvent.APPROVED))

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert '"event": "approved"' in lines[1]

    def test_read_returns_most_recent_first(self, tmp_path):
        log = JsonlAuditLog(tmp_path / "audit.jsonl")
        for n in range(5):
            log.append(_entry(n))

        assert [e.id for e in log.read(3)] == ["ID04", "ID03", "ID02"]

    def test_read_with_non_positive_limit(self, tmp_path):
        log = JsonlAuditLog(tmp_path / "audit.jsonl")
        log.append(_entry(1))
        assert log.read(0) == []

    def test_malformed_lines_are_skipped_individually(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = JsonlAuditLog(path)
        log.append(_entry(1))
        with open(path, "a", encoding="utf-8") as f:
            f.write("{truncated\n")
            f.write('{"ts": "2026-03-14T09:30:00.000Z", "event": "bogus", "id": "X", "summary": ""}\n')
            f.write("\n")
        log.append(_entry(2))

        assert [e.id for e in log.read()] == ["ID02", "ID01"]

    def test_undecodable_bytes_skip_only_that_line(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        log = JsonlAuditLog(path)
        log.append(_entry(1))
        with open(path, "ab") as f:
            f.write(b"\xff\xfe garbage\n")
        log.append(_entry(2))

        assert [e.id for e in log.read(10)] == ["ID02", "ID01"]


class TestInMemoryAuditLog:
    def test_read_order_and_limit(self):
        log = InMemoryAuditLog()
        for n in range(4):
            log.append(_entry(n))
        assert [e.id for e in log.read(2)] == ["ID03", "ID02"]
