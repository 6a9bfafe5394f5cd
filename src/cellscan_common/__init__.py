"""
CellScan Common Library.

Shared primitives for CellScan services:
- Structured exception hierarchy with correlation tracking
- structlog configuration and correlation id propagation
"""

from .exceptions import (
    CellScanError,
    DataIntegrityError,
    DomainError,
    EntityNotFoundError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    InfrastructureError,
    InvalidStateError,
    PersistenceError,
    SessionNotFoundError,
)
from .observability import (
    LogLevel,
    ObservabilitySettings,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    # Exceptions
    "CellScanError",
    "DataIntegrityError",
    "DomainError",
    "EntityNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InfrastructureError",
    "InvalidStateError",
    "PersistenceError",
    "SessionNotFoundError",
    # Observability
    "LogLevel",
    "ObservabilitySettings",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
