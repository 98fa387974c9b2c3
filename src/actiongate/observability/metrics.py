"""Prometheus metrics for the approval lifecycle — counters, histograms, exposition."""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

logger = logging.getLogger(__name__)

__all__ = ["ApprovalMetrics", "CONTENT_TYPE_LATEST"]


class ApprovalMetrics:
    """
    Prometheus metrics collector for actiongate.

    Each instance owns its own registry so several engines (tests, embedded
    use) can coexist in one process without duplicate-series errors.
    """

    def __init__(self, service_name: str = "actiongate", registry: CollectorRegistry | None = None) -> None:
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        service_info = Info("actiongate_service", "Service information", registry=self.registry)
        try:
            from importlib.metadata import version as _pkg_version

            _version = _pkg_version("actiongate")
        except Exception:
            _version = "0.0.0-dev"
        service_info.info({"service": self.service_name, "version": _version})

        self.lifecycle_events = Counter(
            "actiongate_lifecycle_events_total",
            "Lifecycle events written to the audit log",
            ["event"],
            registry=self.registry,
        )
        self.executions = Counter(
            "actiongate_executions_total",
            "Executions of approved records by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.audit_write_failures = Counter(
            "actiongate_audit_write_failures_total",
            "Audit log entries that could not be written",
            registry=self.registry,
        )
        self.command_duration = Histogram(
            "actiongate_command_duration_seconds",
            "Wall-clock duration of individual shell commands",
            buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0),
            registry=self.registry,
        )
        logger.debug("ApprovalMetrics initialized")

    def record_event(self, event: str) -> None:
        self.lifecycle_events.labels(event=event).inc()

    def record_execution(self, outcome: str) -> None:
        self.executions.labels(outcome=outcome).inc()

    def record_audit_failure(self) -> None:
        self.audit_write_failures.inc()

    def observe_command(self, duration: float) -> None:
        self.command_duration.observe(duration)

    def render(self) -> bytes:
        """Prometheus text exposition of this collector's registry."""
        return generate_latest(self.registry)
