"""
Pytest configuration for all actiongate tests — shared fixtures for a
tmp-dir backed approval store, a controllable clock and a wired engine.
"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from actiongate.config.settings import Settings
from actiongate.core.engine import ApprovalEngine
from actiongate.execution.command_runner import CommandRunner
from actiongate.observability.metrics import ApprovalMetrics
from actiongate.persistence import FileApprovalRepository, JsonlAuditLog

# =============================================================================
# CLOCK
# =============================================================================


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 9, 30, tzinfo=UTC))


# =============================================================================
# STORE / ENGINE
# =============================================================================


@pytest.fixture
def approvals_dir(tmp_path) -> Path:
    return tmp_path / "approvals"


@pytest.fixture
def repository(approvals_dir):
    return FileApprovalRepository(approvals_dir)


@pytest.fixture
def audit_log(approvals_dir):
    return JsonlAuditLog(approvals_dir / "audit.jsonl")


@pytest.fixture
def metrics():
    return ApprovalMetrics(service_name="actiongate-test")


@pytest.fixture
def runner(metrics):
    return CommandRunner(timeout_seconds=10, path_prefix=None, metrics=metrics)


@pytest.fixture
def engine(repository, audit_log, runner, metrics, clock):
    return ApprovalEngine(
        repository=repository,
        audit_log=audit_log,
        runner=runner,
        metrics=metrics,
        clock=clock,
    )


@pytest.fixture
def settings(approvals_dir):
    return Settings(
        store={"approvals_dir": approvals_dir},
        cleanup={"enabled": False},
    )


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: end-to-end tests driving the CLI")
