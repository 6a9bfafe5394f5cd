"""CellScan Quiz Service - Branching risk-assessment questionnaire engine."""
from __future__ import annotations

__all__ = [
    "QuestionType", "SessionStatus", "TraversalRoute",
    "Question", "RiskBand", "ScoringWarning", "IntegrityWarning",
]


def __getattr__(name: str):
    """Lazy imports to avoid triggering schema loading during test collection."""
    if name in __all__:
        from .schemas import (  # noqa: F811
            QuestionType, SessionStatus, TraversalRoute,
            Question, RiskBand, ScoringWarning, IntegrityWarning,
        )
        return locals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
