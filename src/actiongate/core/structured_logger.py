"""
Structured Logging with Trace IDs
=================================

JSON-structured logging for the approval lifecycle. Every engine operation
runs inside a ``TraceContext`` so the propose/approve/execute lines for one
request can be followed through the log.

Commands and environment values routinely carry credentials, so message
text and string fields pass through secret redaction before they are
written.
"""

import json
import logging
import re
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variable to store trace_id for current operation
_trace_id_var: ContextVar[str | None] = ContextVar('trace_id', default=None)

_SECRET_PATTERNS = re.compile(
    r"(xoxb-[A-Za-z0-9-]+|sk-[A-Za-z0-9]+|bot\d+:[A-Za-z0-9_-]+|"
    r"ghp_[A-Za-z0-9]+|AKIA[0-9A-Z]{16}|Bearer\s+[A-Za-z0-9._~+/=-]+|"
    r"(?<=password=)[^\s&\"']+|(?<=token=)[^\s&\"']+)",
    re.IGNORECASE,
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _redact_secrets(text: str) -> str:
    return _SECRET_PATTERNS.sub("[REDACTED]", text)


class StructuredLogger:
    """
    Structured logger that outputs JSON logs with trace IDs

    Example output:
    {
        "timestamp": "2025-12-17T10:30:45.123+00:00",
        "level": "INFO",
        "trace_id": "abc123",
        "component": "ApprovalEngine",
        "message": "Approval approved",
        "approval_id": "K7QX",
        "actor": "user:alex"
    }
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        """
        Args:
            component: Component name (e.g., 'ApprovalEngine', 'CommandRunner')
            logger: Optional existing logger (creates new if not provided)
        """
        self.component = component
        self.logger = logger or logging.getLogger(f"actiongate.{component}")

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        log_method = getattr(self.logger, level.lower())
        if not self.logger.isEnabledFor(getattr(logging, level)):
            return

        log_entry: dict[str, Any] = {
            'timestamp': datetime.now(tz=UTC).isoformat(),
            'level': level,
            'component': self.component,
            'message': _redact_secrets(message),
        }

        trace_id = _trace_id_var.get()
        if trace_id:
            log_entry['trace_id'] = trace_id

        for k, v in kwargs.items():
            log_entry[k] = _redact_secrets(v) if isinstance(v, str) else v

        log_method(_redact_secrets(json.dumps(log_entry, default=str)))

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log('ERROR', message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log('CRITICAL', message, **kwargs)


class TraceContext:
    """
    Context manager for setting trace_id for one lifecycle operation

    Usage:
        with TraceContext() as trace_id:
            engine.approve_and_execute("K7QX", actor="user:alex")
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or self._generate_trace_id()
        self.token = None

    def __enter__(self) -> str:
        self.token = _trace_id_var.set(self.trace_id)
        return self.trace_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _trace_id_var.reset(self.token)

    @staticmethod
    def _generate_trace_id() -> str:
        return str(uuid.uuid4())[:8]


def current_trace_id() -> str | None:
    return _trace_id_var.get()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def get_logger(component: str) -> StructuredLogger:
    """Get a structured logger for a component"""
    return StructuredLogger(component)


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Install a stderr handler on the ``actiongate`` logger.

    Used by the CLI and gateway entry points only; library callers keep
    control of their own logging setup.
    """
    root = logging.getLogger("actiongate")
    root.setLevel(level.upper())
    for handler in list(root.handlers):
        if getattr(handler, "_actiongate", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s" if fmt == "json" else _TEXT_FORMAT))
    handler._actiongate = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.propagate = False
