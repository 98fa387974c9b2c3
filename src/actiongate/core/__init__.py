"""Core actiongate module — canonical public API."""

from actiongate.core.exceptions import (
    ActionGateError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
    ApprovalStoreError,
    ConfigurationError,
    ErrorCode,
    InvalidTransitionError,
    ValidationError,
)
from actiongate.core.types import (
    ApprovalRecord,
    ApprovalStats,
    ApprovalStatus,
    AuditEvent,
    AuditLogEntry,
    BatchError,
    BatchResult,
    ExecutionOutcome,
)
from actiongate.core.engine import ApprovalEngine

__all__ = [
    "ActionGateError",
    "ApprovalEngine",
    "ApprovalExpiredError",
    "ApprovalNotFoundError",
    "ApprovalRecord",
    "ApprovalStats",
    "ApprovalStatus",
    "ApprovalStoreError",
    "AuditEvent",
    "AuditLogEntry",
    "BatchError",
    "BatchResult",
    "ConfigurationError",
    "ErrorCode",
    "ExecutionOutcome",
    "InvalidTransitionError",
    "ValidationError",
]
