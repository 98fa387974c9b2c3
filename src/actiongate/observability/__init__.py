"""Observability - Prometheus metrics and background housekeeping."""

from .cleanup_service import CleanupService
from .metrics import CONTENT_TYPE_LATEST, ApprovalMetrics

__all__ = ["ApprovalMetrics", "CONTENT_TYPE_LATEST", "CleanupService"]
