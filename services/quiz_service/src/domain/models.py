"""
CellScan Quiz Service - Domain Models.
Data classes for quiz sessions, scoring and results.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from ..schemas import (
    IntegrityWarning, Question, RiskBand, ScoringWarning, SessionStatus, TraversalRoute,
)


@dataclass(frozen=True)
class QuestionResponse:
    """A single answer to a question."""
    question_id: str
    value: Any
    answered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {"question_id": self.question_id, "value": self.value,
                "answered_at": self.answered_at.isoformat()}


@dataclass
class SessionState:
    """In-memory state of one user's traversal."""
    session_id: UUID = field(default_factory=uuid4)
    user_id: str | None = None
    status: SessionStatus = SessionStatus.NOT_STARTED
    current_question_id: str | None = None
    responses: dict[str, QuestionResponse] = field(default_factory=dict)
    history: list[QuestionResponse] = field(default_factory=list)
    visited: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class ScoreOutcome:
    """Contribution of one response to the total score."""
    points: int = 0
    warning: ScoringWarning | None = None


@dataclass
class ScoreBreakdown:
    """Total score with per-question contributions."""
    total: int = 0
    item_scores: dict[str, int] = field(default_factory=dict)
    warnings: list[ScoringWarning] = field(default_factory=list)


@dataclass(frozen=True)
class TraversalDecision:
    """Next question chosen by the traversal controller."""
    next_id: str | None
    route: TraversalRoute

    @property
    def is_end(self) -> bool:
        return self.next_id is None


@dataclass
class Resolution:
    """Outcome of resolving a score against risk bands."""
    band: RiskBand | None = None
    warnings: list[IntegrityWarning] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.band is not None


@dataclass
class QuizResult:
    """Final output of a completed session."""
    session_id: UUID
    total_score: int
    matched_band: RiskBand | None
    responses: dict[str, QuestionResponse] = field(default_factory=dict)
    item_scores: dict[str, int] = field(default_factory=dict)
    visited: list[str] = field(default_factory=list)
    scoring_warnings: list[ScoringWarning] = field(default_factory=list)
    integrity_warnings: list[IntegrityWarning] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def assessment_available(self) -> bool:
        """False when no configured band covers the score."""
        return self.matched_band is not None

    @property
    def has_warnings(self) -> bool:
        return bool(self.scoring_warnings or self.integrity_warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to a serializable dictionary."""
        return {
            "session_id": str(self.session_id),
            "total_score": self.total_score,
            "matched_band": self.matched_band.model_dump() if self.matched_band else None,
            "assessment_available": self.assessment_available,
            "responses": {qid: r.to_dict() for qid, r in self.responses.items()},
            "item_scores": dict(self.item_scores),
            "visited": list(self.visited),
            "scoring_warnings": [w.model_dump() for w in self.scoring_warnings],
            "integrity_warnings": [w.model_dump() for w in self.integrity_warnings],
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass(frozen=True)
class SessionProgress:
    """Progress counters for presentation layers."""
    answered: int
    visited: int
    catalog_size: int

    @property
    def fraction(self) -> float:
        return self.answered / self.catalog_size if self.catalog_size else 0.0


@dataclass(frozen=True)
class PendingWrite:
    """A sink write waiting to be delivered."""
    kind: str
    payload: QuestionResponse | QuizResult


@dataclass
class SessionStartResult:
    """Result from starting a session through the service."""
    session_id: UUID
    question: Question
    progress: SessionProgress
    integrity_warnings: list[IntegrityWarning] = field(default_factory=list)


@dataclass
class AnswerOutcome:
    """Result from submitting an answer through the service."""
    session_id: UUID
    next_question: Question | None = None
    result: QuizResult | None = None
    persisted: bool = True
    persistence_error: str | None = None
    pending_writes: int = 0

    @property
    def completed(self) -> bool:
        return self.result is not None
