"""
Standardized error taxonomy for the record service.

Every failure the store layer or the HTTP surface reports is one of these
classes. Each carries a stable code, a category used for HTTP status mapping,
and an optional suggestion for operators.

Code prefixes:
- VAL_1xx: request validation
- REC_2xx: record lookup
- STORE_3xx: storage backends
- SYS_9xx: unexpected internal failures
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORAGE = "storage"
    NETWORK = "network"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecordsError(Exception):
    """
    Base class for all service errors.

    Subclasses fix `code`, `category` and `severity`; callers only supply the
    context that makes the message useful.
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.HIGH,
        data: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.category = category
        self.severity = severity
        self.data = data or {}
        self.suggestion = suggestion

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "data": self.data,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


# =============================================================================
# Validation errors (VAL_1xx)
# =============================================================================


class RecordValidationError(RecordsError):
    """A record payload is missing a required field."""

    def __init__(
        self, missing_fields: List[str], name: Optional[str] = None, message: Optional[str] = None
    ) -> None:
        super().__init__(
            code="VAL_101",
            message=message or f"Missing required fields: {', '.join(missing_fields)}",
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            data={"missing_fields": list(missing_fields), "name": name},
            suggestion="Records need a non-empty name and at least one value.",
        )


# =============================================================================
# Lookup errors (REC_2xx)
# =============================================================================


class RecordNotFoundError(RecordsError):
    def __init__(self, name: str) -> None:
        super().__init__(
            code="REC_201",
            message=f"Record not found: {name}",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            data={"name": name},
        )


# =============================================================================
# Storage errors (STORE_3xx)
# =============================================================================


class BackendUnavailableError(RecordsError):
    """
    The remote key-value service could not be reached, rejected the call, or
    did not answer within the per-operation timeout.

    Raised for a single operation only; the store keeps serving later calls.
    """

    def __init__(self, operation: str, reason: str, key: Optional[str] = None) -> None:
        super().__init__(
            code="STORE_301",
            message=f"Record backend unavailable during {operation}: {reason}",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            data={"operation": operation, "key": key, "reason": reason},
            suggestion="Check connectivity to the configured STORE_ENDPOINTS and retry.",
        )


class SerializationError(RecordsError):
    """Stored bytes could not be decoded as a record."""

    def __init__(self, reason: str, key: Optional[str] = None) -> None:
        super().__init__(
            code="STORE_302",
            message=f"Malformed record data: {reason}",
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.MEDIUM,
            data={"key": key, "reason": reason},
        )


class ConnectionSetupError(RecordsError):
    """No configured endpoint answered while building a distributed store."""

    def __init__(self, endpoints: List[str], reason: str) -> None:
        super().__init__(
            code="STORE_303",
            message=f"Could not connect to record backend at {', '.join(endpoints)}: {reason}",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.HIGH,
            data={"endpoints": list(endpoints), "reason": reason},
            suggestion="Verify STORE_ENDPOINTS and that the key-value service is running.",
        )


# =============================================================================
# System errors (SYS_9xx)
# =============================================================================


class InternalError(RecordsError):
    def __init__(self, message: str, exception_type: Optional[str] = None) -> None:
        super().__init__(
            code="SYS_901",
            message=message,
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.HIGH,
            data={"exception_type": exception_type},
        )


# =============================================================================
# Utilities
# =============================================================================


def classify_exception(exc: BaseException) -> RecordsError:
    """
    Map an arbitrary exception onto the taxonomy.

    Service errors pass through unchanged.
    """
    if isinstance(exc, RecordsError):
        return exc

    import redis.exceptions as redis_exc

    if isinstance(exc, (redis_exc.ConnectionError, redis_exc.TimeoutError)):
        return BackendUnavailableError(operation="unknown", reason=str(exc))

    return InternalError(message=str(exc) or exc.__class__.__name__, exception_type=type(exc).__name__)


def json_error_response(error: RecordsError) -> Dict[str, Any]:
    return {"ok": False, "error": error.to_dict()}
