"""Tests for actiongate.persistence — flat-file record store and in-memory store"""

import json
import threading
from datetime import UTC, datetime, timedelta

import pytest

from actiongate.core.exceptions import ApprovalStoreError
from actiongate.core.types import ApprovalRecord, ApprovalStatus
from actiongate.persistence import (
    FileApprovalRepository,
    InMemoryApprovalRepository,
    normalize_id,
)

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)


def _record(approval_id="K7QX", created=NOW, ttl=timedelta(hours=2), **overrides) -> ApprovalRecord:
    return ApprovalRecord(
        id=approval_id,
        created_at=created,
        expires_at=created + ttl,
        summary=f"Action {approval_id}",
        commands=["echo hi"],
        **overrides,
    )


class TestNormalizeId:
    def test_strips_and_uppercases(self):
        assert normalize_id("  k7qx \n") == "K7QX"


class TestFileApprovalRepository:
    def test_save_then_load(self, repository):
        record = _record()
        repository.save(record)
        assert repository.load("K7QX") == record

    def test_load_is_case_insensitive(self, repository):
        repository.save(_record())
        assert repository.load("k7qx").id == "K7QX"

    def test_file_layout(self, repository, approvals_dir):
        repository.save(_record())
        path = approvals_dir / "K7QX.json"
        assert path.exists()
        assert json.loads(path.read_text())["summary"] == "Action K7QX"

    def test_load_missing_returns_none(self, repository):
        assert repository.load("NOPE") is None

    def test_ids_that_leave_the_directory_are_not_found(self, repository, approvals_dir):
        repository.save(_record())
        outside = approvals_dir.parent / "OUTSIDE.json"
        outside.write_text(json.dumps(_record("OUTSIDE").to_dict()))

        for approval_id in ("../outside", "..\\OUTSIDE", "sub/K7QX", ".."):
            assert repository.load(approval_id) is None
            assert repository.exists(approval_id) is False
            repository.delete(approval_id)

        assert outside.exists()
        assert repository.exists("K7QX")

    def test_save_rejects_unsafe_id(self, repository):
        with pytest.raises(ApprovalStoreError):
            repository.save(_record("../ESCAPE"))

    def test_load_corrupt_returns_none(self, repository, approvals_dir):
        approvals_dir.mkdir(parents=True)
        (approvals_dir / "BAD1.json").write_text("{not json")
        assert repository.load("BAD1") is None

    def test_list_skips_corrupt_and_foreign_files(self, repository, approvals_dir):
        repository.save(_record("GOOD"))
        (approvals_dir / "BAD1.json").write_text("{not json")
        (approvals_dir / "BAD2.json").write_text(json.dumps({"id": "BAD2"}))
        (approvals_dir / "notes.txt").write_text("ignored")

        records = repository.list(include_all=True, now=NOW)
        assert [r.id for r in records] == ["GOOD"]

    def test_list_creates_missing_directory(self, repository, approvals_dir):
        assert repository.list(now=NOW) == []
        assert approvals_dir.is_dir()

    def test_list_sorts_newest_first(self, repository):
        repository.save(_record("OLD1", created=NOW - timedelta(minutes=10)))
        repository.save(_record("NEW1", created=NOW))
        repository.save(_record("MID1", created=NOW - timedelta(minutes=5)))

        assert [r.id for r in repository.list(now=NOW)] == ["NEW1", "MID1", "OLD1"]

    def test_list_hides_non_pending_by_default(self, repository):
        repository.save(_record("PEND"))
        repository.save(_record("DONE", status=ApprovalStatus.EXECUTED))

        assert [r.id for r in repository.list(now=NOW)] == ["PEND"]
        assert {r.id for r in repository.list(include_all=True, now=NOW)} == {"PEND", "DONE"}

    def test_list_persists_lazy_expiry(self, repository):
        repository.save(_record("STAL", ttl=timedelta(minutes=5)))

        assert repository.list(now=NOW + timedelta(minutes=5)) == []
        assert repository.load("STAL").status == ApprovalStatus.EXPIRED

    def test_lazy_expiry_leaves_approved_records_alone(self, repository):
        repository.save(_record("APPR", ttl=timedelta(minutes=5), status=ApprovalStatus.APPROVED))
        repository.list(include_all=True, now=NOW + timedelta(hours=1))
        assert repository.load("APPR").status == ApprovalStatus.APPROVED

    def test_delete_is_idempotent(self, repository):
        repository.save(_record())
        repository.delete("K7QX")
        repository.delete("K7QX")
        assert repository.load("K7QX") is None
        assert not repository.exists("K7QX")

    def test_save_leaves_no_temp_files(self, repository, approvals_dir):
        for _ in range(5):
            repository.save(_record())
        assert sorted(p.name for p in approvals_dir.iterdir()) == ["K7QX.json"]

    def test_concurrent_saves_never_tear(self, repository):
        repository.save(_record())
        errors: list[Exception] = []

        def writer(n: int) -> None:
            try:
                for i in range(20):
                    record = _record()
                    record.details = f"writer {n} pass {i} " + "x" * 2000
                    repository.save(record)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for _ in range(50):
            assert repository.load("K7QX") is not None
        for t in threads:
            t.join()

        assert errors == []
        assert repository.load("K7QX").details.startswith("writer ")


class TestInMemoryApprovalRepository:
    def test_same_lazy_expiry_semantics(self):
        repo = InMemoryApprovalRepository()
        repo.save(_record("STAL", ttl=timedelta(minutes=1)))
        assert repo.list(now=NOW + timedelta(minutes=2)) == []
        assert repo.load("stal").status == ApprovalStatus.EXPIRED

    def test_loaded_records_are_copies(self):
        repo = InMemoryApprovalRepository()
        repo.save(_record())
        loaded = repo.load("K7QX")
        loaded.status = ApprovalStatus.DENIED
        assert repo.load("K7QX").status == ApprovalStatus.PENDING

    def test_len(self):
        repo = InMemoryApprovalRepository()
        repo.save(_record("AAAA"))
        repo.save(_record("BBBB"))
        repo.delete("AAAA")
        assert len(repo) == 1


@pytest.mark.parametrize("backend", ["file", "memory"])
def test_backends_agree_on_exists(backend, tmp_path):
    repo = FileApprovalRepository(tmp_path) if backend == "file" else InMemoryApprovalRepository()
    assert not repo.exists("K7QX")
    repo.save(_record())
    assert repo.exists(" k7qx ")
