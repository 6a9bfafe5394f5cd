"""
CellScan Exception Hierarchy.
Structured exception handling with correlation tracking.
"""
from __future__ import annotations
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from pydantic import BaseModel, Field
import structlog

logger = structlog.get_logger(__name__)


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    STATE = "state"
    DATA_INTEGRITY = "data_integrity"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


class ErrorContext(BaseModel):
    """Structured context for error tracking."""
    correlation_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    service_name: str = Field(default="cellscan-quiz")
    operation: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    additional_data: dict[str, Any] = Field(default_factory=dict)
    model_config = {"frozen": True}

    def with_operation(self, operation: str) -> ErrorContext:
        return self.model_copy(update={"operation": operation})

    def with_session(self, session_id: str, user_id: str | None = None) -> ErrorContext:
        return self.model_copy(update={"session_id": session_id,
                                       "user_id": user_id or self.user_id})


class CellScanError(Exception):
    """Base exception for all CellScan errors with structured tracking."""
    error_code: str = "CELLSCAN_ERROR"
    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, *, user_message: str | None = None,
                 context: ErrorContext | None = None, cause: Exception | None = None,
                 details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.user_message = user_message or "An error occurred. Please try again."
        self.context = context or ErrorContext()
        self.cause = cause
        self.details = details or {}
        self._log_error()

    def _log_error(self) -> None:
        log_data = {
            "error_code": self.error_code, "category": self.category.value,
            "severity": self.severity.value, "correlation_id": self.context.correlation_id,
            "operation": self.context.operation, "details": self.details,
        }
        if self.context.session_id:
            log_data["session_id"] = self.context.session_id
        if self.cause:
            log_data["cause_type"] = type(self.cause).__name__
            log_data["cause_message"] = str(self.cause)
        if self.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            logger.error(self.message, **log_data)
        else:
            logger.warning(self.message, **log_data)

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.error_code, "message": self.user_message,
                         "correlation_id": self.context.correlation_id,
                         "timestamp": self.context.timestamp.isoformat()}}

    def to_internal_dict(self) -> dict[str, Any]:
        result = self.to_dict()
        result["internal"] = {"message": self.message, "category": self.category.value,
                              "severity": self.severity.value, "details": self.details,
                              "operation": self.context.operation}
        if self.cause:
            result["internal"]["cause"] = {"type": type(self.cause).__name__,
                                           "message": str(self.cause)}
        return result


# Domain Layer Exceptions
class DomainError(CellScanError):
    error_code = "DOMAIN_ERROR"
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.MEDIUM


class DataIntegrityError(DomainError):
    """Content data (questions, branch maps, risk bands) violates an invariant."""
    error_code = "DATA_INTEGRITY_ERROR"
    category = ErrorCategory.DATA_INTEGRITY
    severity = ErrorSeverity.HIGH

    def __init__(self, message: str, *, issues: list[str] | None = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if issues:
            details["issues"] = list(issues)
        super().__init__(message, user_message="This assessment is currently unavailable",
                         details=details, **kwargs)
        self.issues = list(issues or [])


class InvalidStateError(DomainError):
    """Operation invoked in the wrong session state or for the wrong question."""
    error_code = "INVALID_STATE"
    category = ErrorCategory.STATE
    severity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, *, current_state: str | None = None,
                 expected_state: str | None = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if current_state:
            details["current_state"] = current_state
        if expected_state:
            details["expected_state"] = expected_state
        super().__init__(message, user_message="Operation not allowed", details=details, **kwargs)
        self.current_state, self.expected_state = current_state, expected_state


class EntityNotFoundError(DomainError):
    error_code = "ENTITY_NOT_FOUND"
    category = ErrorCategory.NOT_FOUND
    severity = ErrorSeverity.LOW

    def __init__(self, entity_type: str, entity_id: str, **kwargs: Any) -> None:
        message = f"{entity_type} with ID '{entity_id}' not found"
        user_message = f"The requested {entity_type.lower()} was not found"
        details = kwargs.pop("details", {})
        details.update({"entity_type": entity_type, "entity_id": entity_id})
        super().__init__(message, user_message=user_message, details=details, **kwargs)
        self.entity_type, self.entity_id = entity_type, entity_id


class SessionNotFoundError(EntityNotFoundError):
    error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str, **kwargs: Any) -> None:
        super().__init__("QuizSession", session_id, **kwargs)


# Infrastructure Layer Exceptions
class InfrastructureError(CellScanError):
    error_code = "INFRASTRUCTURE_ERROR"
    category = ErrorCategory.PERSISTENCE
    severity = ErrorSeverity.HIGH


class PersistenceError(InfrastructureError):
    """The external response sink rejected or failed a write."""
    error_code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, *, operation: str | None = None,
                 pending: int | None = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if operation:
            details["sink_operation"] = operation
        if pending is not None:
            details["pending"] = pending
        super().__init__(message, user_message="Your answers could not be saved yet",
                         details=details, **kwargs)
        self.pending = pending
