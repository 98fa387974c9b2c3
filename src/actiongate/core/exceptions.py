"""
Custom Exceptions for actiongate
================================

Structured error handling lets the CLI, the agent tool and the HTTP gateway
react to failures by type instead of parsing messages.

Error Codes:
- 1xxx: Client errors (unknown approval, invalid transition, validation)
- 5xxx: System errors (store, configuration)

Command failures are never raised: they are recorded on the approval
record as result/error text and a partial/failed status.
"""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Structured error codes for user-friendly messages"""

    # 1xxx: Client Errors
    VALIDATION_ERROR = 1001
    APPROVAL_NOT_FOUND = 1003
    INVALID_TRANSITION = 1004
    APPROVAL_EXPIRED = 1005

    # 5xxx: System Errors
    INTERNAL_ERROR = 5001
    STORE_ERROR = 5002
    CONFIGURATION_ERROR = 5003


class ActionGateError(Exception):
    """Base exception for all actiongate errors"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': int(self.error_code),
            'message': self.message,
            'details': self.details
        }


class ApprovalNotFoundError(ActionGateError):
    """Raised when no record exists for an approval id"""

    def __init__(self, approval_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"Approval {approval_id} not found", ErrorCode.APPROVAL_NOT_FOUND, details)
        self.approval_id = approval_id


class InvalidTransitionError(ActionGateError):
    """Raised when an operation is not valid for the record's current status"""

    def __init__(
        self,
        approval_id: str,
        current_status: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message or f"Approval {approval_id} is {current_status}",
            ErrorCode.INVALID_TRANSITION,
            details,
        )
        self.approval_id = approval_id
        self.current_status = current_status


class ApprovalExpiredError(ActionGateError):
    """Raised when approval is attempted past expiry; the record is now expired"""

    def __init__(self, approval_id: str, details: dict[str, Any] | None = None):
        super().__init__(f"Approval {approval_id} has expired", ErrorCode.APPROVAL_EXPIRED, details)
        self.approval_id = approval_id


class ValidationError(ActionGateError):
    """Raised when input validation fails"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class ApprovalStoreError(ActionGateError):
    """Raised when the record store cannot complete an operation"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.STORE_ERROR, details)


class ConfigurationError(ActionGateError):
    """Raised when settings cannot be loaded or validated"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)
