"""Agent-facing tools."""

from .approvals_tool import ApprovalsTool

__all__ = ["ApprovalsTool"]
