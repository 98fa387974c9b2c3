"""Approvals Tool - let an agent propose actions that need human sign-off"""

import asyncio
from datetime import timedelta
from typing import Any

from actiongate.core.engine import ApprovalEngine
from actiongate.core.exceptions import ActionGateError, ApprovalNotFoundError, ValidationError
from actiongate.core.interfaces.tool import BaseTool, ToolCategory
from actiongate.core.structured_logger import TraceContext, get_logger
from actiongate.core.types import ApprovalRecord, ApprovalStatus, format_timestamp, utcnow
from actiongate.interfaces.renderers import format_approval_message, format_relative_time
from actiongate.persistence.repositories import normalize_id

logger = get_logger("ApprovalsTool")

ACTIONS = [
    "propose",
    "list",
    "check",
    "approve",
    "deny",
    "execute",
    "approveAndExecute",
    "batch",
    "clean",
    "history",
    "stats",
]


def _expires_in(record: ApprovalRecord) -> str:
    return format_relative_time(record.expires_at, utcnow())


class ApprovalsTool(BaseTool):
    """Propose, inspect and resolve human-gated shell actions"""

    METADATA = {
        "name": "approvals",
        "description": (
            "Manage action approvals. Propose actions that need user confirmation "
            "before executing, then approve/deny/execute them by id.\n\n"
            "Typical flow: propose -> send the returned message to the user -> user "
            "replies 'approve ABC1' -> approveAndExecute with id='ABC1'."
        ),
        "category": ToolCategory.AUTOMATION,
        "version": "1.0.0",
        "requires_confirmation": False,
        "parameters": [
            {"name": "action", "param_type": "string", "description": "Action to perform",
             "required": True, "enum": ACTIONS},
            {"name": "id", "param_type": "string", "required": False,
             "description": "Approval ID (check/approve/deny/execute/approveAndExecute)"},
            {"name": "ids", "param_type": "list", "required": False,
             "description": "Approval IDs for batch; ['all'] processes every pending approval"},
            {"name": "summary", "param_type": "string", "required": False,
             "description": "One-line description of what will happen (propose)"},
            {"name": "details", "param_type": "string", "required": False,
             "description": "Optional longer explanation (propose)"},
            {"name": "commands", "param_type": "list", "required": False,
             "description": "Shell commands to run once approved (propose)"},
            {"name": "env", "param_type": "dict", "required": False,
             "description": "Extra environment variables for the commands (propose)"},
            {"name": "expiryMinutes", "param_type": "float", "required": False,
             "description": "Minutes until expiry (propose, default 120)"},
            {"name": "channel", "param_type": "string", "required": False,
             "description": "Channel the approval was proposed from (propose)"},
            {"name": "chatId", "param_type": "string", "required": False,
             "description": "Chat ID within the channel (propose)"},
            {"name": "actor", "param_type": "string", "required": False,
             "description": "Who is performing this action, e.g. 'user:alex' or 'cron:triage'"},
            {"name": "days", "param_type": "float", "required": False,
             "description": "Keep finished approvals newer than this many days (clean, default 7)"},
            {"name": "limit", "param_type": "int", "required": False,
             "description": "Number of entries to return (history, default 20)"},
        ],
        "examples": [
            "propose summary='Archive 15 promo emails' commands=['mailctl archive --label promo']",
            "approveAndExecute id='K7QX' actor='user:alex'",
        ],
    }

    def __init__(self, engine: ApprovalEngine, history_limit: int = 20, clean_older_than_days: float = 7) -> None:
        super().__init__()
        self.engine = engine
        self.history_limit = history_limit
        self.clean_older_than_days = clean_older_than_days

    async def execute(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Dispatch one approvals action"""
        valid, message = self.validate_parameters(parameters)
        if not valid:
            return self._error_response(message)

        action = parameters["action"]
        handler = self._DISPATCH[action]
        with TraceContext():
            try:
                return await asyncio.to_thread(handler, self, parameters)
            except ActionGateError as e:
                logger.warning("Approvals action failed", action=action, error_type=type(e).__name__, error=e.message)
                return self._error_response(e.message, error_code=int(e.error_code))

    @staticmethod
    def _require_id(parameters: dict[str, Any], action: str) -> str:
        approval_id = parameters.get("id")
        if not approval_id:
            raise ValidationError(f"id is required for {action}")
        return approval_id

    def _propose(self, parameters: dict[str, Any]) -> dict[str, Any]:
        summary = (parameters.get("summary") or "").strip()
        commands = parameters.get("commands") or []
        if not summary:
            raise ValidationError("summary is required for propose")
        if not commands or not all(isinstance(c, str) and c.strip() for c in commands):
            raise ValidationError("commands array is required for propose")

        expiry_minutes = parameters.get("expiryMinutes")
        if expiry_minutes is not None and expiry_minutes <= 0:
            raise ValidationError("expiryMinutes must be positive")

        record = self.engine.propose(
            summary,
            commands,
            details=parameters.get("details"),
            ttl=timedelta(minutes=expiry_minutes) if expiry_minutes else None,
            env=parameters.get("env"),
            channel=parameters.get("channel"),
            chat_id=parameters.get("chatId"),
            proposed_by=parameters.get("actor"),
        )
        return self._success_response({
            "approval": {
                "id": record.id,
                "status": record.status.value,
                "expiresAt": format_timestamp(record.expires_at),
                "expiresIn": _expires_in(record),
            },
            "message": format_approval_message(record),
        })

    def _list(self, parameters: dict[str, Any]) -> dict[str, Any]:
        pending = self.engine.list(include_all=False)
        return self._success_response({
            "count": len(pending),
            "approvals": [
                {
                    "id": r.id,
                    "summary": r.summary,
                    "status": r.status.value,
                    "expiresAt": format_timestamp(r.expires_at),
                    "expiresIn": _expires_in(r),
                }
                for r in pending
            ],
        })

    def _check(self, parameters: dict[str, Any]) -> dict[str, Any]:
        approval_id = self._require_id(parameters, "check")
        record = self.engine.load(approval_id)
        if record is None:
            raise ApprovalNotFoundError(normalize_id(approval_id))
        approval = {
            "id": record.id,
            "summary": record.summary,
            "status": record.status.value,
            "expiresAt": format_timestamp(record.expires_at),
            "channel": record.channel,
            "chatId": record.chat_id,
            "result": record.result,
            "error": record.error,
        }
        if record.status == ApprovalStatus.PENDING:
            approval["expiresIn"] = _expires_in(record)
        return self._success_response({"approval": approval})

    def _approve(self, parameters: dict[str, Any]) -> dict[str, Any]:
        record = self.engine.approve(self._require_id(parameters, "approve"), parameters.get("actor"))
        return self._success_response({
            "message": f"Approved {record.id}",
            "approval": {"id": record.id, "status": record.status.value, "approvedBy": record.approved_by},
        })

    def _deny(self, parameters: dict[str, Any]) -> dict[str, Any]:
        record = self.engine.deny(self._require_id(parameters, "deny"), parameters.get("actor"))
        return self._success_response({
            "message": f"Denied {record.id}",
            "approval": {"id": record.id, "status": record.status.value, "deniedBy": record.denied_by},
        })

    def _execute(self, parameters: dict[str, Any]) -> dict[str, Any]:
        record = self.engine.execute(self._require_id(parameters, "execute"))
        return self._success_response({
            "message": f"Executed {record.id}",
            "approval": {
                "id": record.id,
                "status": record.status.value,
                "result": record.result,
                "error": record.error,
            },
        })

    def _approve_and_execute(self, parameters: dict[str, Any]) -> dict[str, Any]:
        record = self.engine.approve_and_execute(
            self._require_id(parameters, "approveAndExecute"), parameters.get("actor")
        )
        return self._success_response({
            "message": f"Approved and executed {record.id}",
            "approval": {
                "id": record.id,
                "status": record.status.value,
                "approvedBy": record.approved_by,
                "result": record.result,
                "error": record.error,
            },
        })

    def _batch(self, parameters: dict[str, Any]) -> dict[str, Any]:
        ids = parameters.get("ids") or []
        if not ids:
            raise ValidationError("ids array is required for batch")
        targets = "all" if len(ids) == 1 and str(ids[0]).lower() == "all" else ids
        result = self.engine.batch(targets, parameters.get("actor"))

        message = f"Processed {len(result.approved)} approval(s)"
        if result.errors:
            message += f", {len(result.errors)} error(s)"
        return self._success_response({
            "message": message,
            "approved": [
                {
                    "id": r.id,
                    "summary": r.summary,
                    "status": r.status.value,
                    "result": r.result,
                    "error": r.error,
                }
                for r in result.approved
            ],
            "errors": [e.to_dict() for e in result.errors],
        })

    def _clean(self, parameters: dict[str, Any]) -> dict[str, Any]:
        days = parameters.get("days")
        if days is not None and days < 0:
            raise ValidationError("days must not be negative")
        removed = self.engine.clean(days if days is not None else self.clean_older_than_days)
        return self._success_response({"message": f"Removed {removed} old approval(s)", "removed": removed})

    def _history(self, parameters: dict[str, Any]) -> dict[str, Any]:
        limit = parameters.get("limit") or self.history_limit
        entries = self.engine.read_audit_log(limit)
        return self._success_response({
            "count": len(entries),
            "entries": [
                {k: v for k, v in e.to_dict().items() if k != "details"}
                for e in entries
            ],
        })

    def _stats(self, parameters: dict[str, Any]) -> dict[str, Any]:
        stats = self.engine.stats()
        return self._success_response({
            "total": stats.total,
            "byStatus": stats.by_status,
            "recentActivity": [
                {"ts": format_timestamp(e.ts), "event": e.event.value, "id": e.id, "summary": e.summary}
                for e in stats.recent_activity[:5]
            ],
        })

    _DISPATCH: dict[str, Any] = {
        "propose": _propose,
        "list": _list,
        "check": _check,
        "approve": _approve,
        "deny": _deny,
        "execute": _execute,
        "approveAndExecute": _approve_and_execute,
        "batch": _batch,
        "clean": _clean,
        "history": _history,
        "stats": _stats,
    }
