"""
Persistence Layer - Data Access Objects (DAO) Pattern
======================================================

Abstract interfaces for approval records and the audit log.
Allows swapping backends (flat files -> in-memory, etc.) without changing
the lifecycle engine.
"""

from .file_impl import FileApprovalRepository, JsonlAuditLog
from .inmemory_impl import InMemoryApprovalRepository, InMemoryAuditLog
from .repositories import ApprovalRepository, AuditLogRepository, normalize_id

__all__ = [
    "ApprovalRepository",
    "AuditLogRepository",
    "FileApprovalRepository",
    "InMemoryApprovalRepository",
    "InMemoryAuditLog",
    "JsonlAuditLog",
    "normalize_id",
]
