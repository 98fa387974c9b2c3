"""
Factories - build a fully wired ApprovalEngine from Settings.

Outer layers (CLI, agent tool, HTTP gateway, cleanup service) obtain their
engine here instead of assembling repositories and runners themselves.
"""

from __future__ import annotations

from datetime import timedelta

from actiongate.config.settings import Settings, load_settings
from actiongate.core.engine import ApprovalEngine
from actiongate.core.structured_logger import get_logger
from actiongate.execution.command_runner import CommandRunner
from actiongate.observability.metrics import ApprovalMetrics
from actiongate.persistence import FileApprovalRepository, JsonlAuditLog

logger = get_logger("Factories")


def create_command_runner(settings: Settings, metrics: ApprovalMetrics | None = None) -> CommandRunner:
    return CommandRunner(
        timeout_seconds=settings.execution.timeout_seconds,
        shell=settings.execution.shell,
        path_prefix=settings.execution.path_prefix,
        metrics=metrics,
    )


def create_approval_engine(
    settings: Settings | None = None,
    metrics: ApprovalMetrics | None = None,
) -> ApprovalEngine:
    """
    Create an ApprovalEngine backed by the flat-file store.

    Args:
        settings: Loaded settings (defaults to environment-based settings)
        metrics: Shared metrics collector (a fresh one is created if omitted)
    """
    settings = settings or load_settings()
    metrics = metrics or ApprovalMetrics(service_name=settings.project_name)

    engine = ApprovalEngine(
        repository=FileApprovalRepository(settings.store.approvals_dir),
        audit_log=JsonlAuditLog(settings.store.audit_log_path),
        runner=create_command_runner(settings, metrics),
        metrics=metrics,
        default_ttl=timedelta(minutes=settings.approvals.default_ttl_minutes),
    )
    logger.debug("ApprovalEngine created", approvals_dir=str(settings.store.approvals_dir))
    return engine
