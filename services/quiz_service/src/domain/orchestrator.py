"""
CellScan Quiz Service - Session Orchestration.
State machine driving one user's pass through a question catalog.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence
from uuid import UUID
import structlog

from cellscan_common.exceptions import ErrorContext, InvalidStateError
from ..schemas import IntegrityWarning, Question, RiskBand, SessionStatus
from .catalog import QuestionCatalog
from .models import (
    QuestionResponse, QuizResult, SessionProgress, SessionState, TraversalDecision,
)
from .resolver import RiskResolver
from .scoring import ScoringEngine
from .traversal import TraversalController

logger = structlog.get_logger(__name__)


class QuizSession:
    """Session orchestrator: NOT_STARTED -> IN_PROGRESS -> COMPLETED.

    Every rejected call leaves the session untouched. Catalog and bands are
    supplied fully loaded; nothing here performs I/O.
    """

    def __init__(self, *, user_id: str | None = None, session_id: UUID | None = None,
                 scoring: ScoringEngine | None = None,
                 traversal: TraversalController | None = None,
                 resolver: RiskResolver | None = None) -> None:
        self._scoring = scoring or ScoringEngine()
        self._traversal = traversal or TraversalController()
        self._resolver = resolver or RiskResolver()
        self._state = SessionState(user_id=user_id)
        if session_id is not None:
            self._state.session_id = session_id
        self._catalog: QuestionCatalog | None = None
        self._bands: list[RiskBand] = []
        self._integrity_warnings: list[IntegrityWarning] = []
        self._result: QuizResult | None = None

    @property
    def session_id(self) -> UUID:
        return self._state.session_id

    @property
    def user_id(self) -> str | None:
        return self._state.user_id

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def current_question_id(self) -> str | None:
        return self._state.current_question_id

    @property
    def current_question(self) -> Question | None:
        if self._catalog is None or self._state.status != SessionStatus.IN_PROGRESS:
            return None
        return self._catalog.get(self._state.current_question_id)

    @property
    def visited(self) -> tuple[str, ...]:
        return tuple(self._state.visited)

    @property
    def responses(self) -> dict[str, QuestionResponse]:
        return dict(self._state.responses)

    @property
    def history(self) -> tuple[QuestionResponse, ...]:
        return tuple(self._state.history)

    @property
    def integrity_warnings(self) -> list[IntegrityWarning]:
        return list(self._integrity_warnings)

    @property
    def progress(self) -> SessionProgress:
        return SessionProgress(answered=len(self._state.responses), visited=len(self._state.visited),
                               catalog_size=len(self._catalog) if self._catalog else 0)

    @property
    def running_score(self) -> int:
        """Score of the answers given so far."""
        if self._catalog is None:
            return 0
        return self._scoring.total(self._catalog, self._state.responses).total

    def start(self, catalog: QuestionCatalog | Iterable[Question],
              bands: Sequence[RiskBand] = ()) -> Question:
        """Validate content and position the cursor on the root question."""
        self._require_status(SessionStatus.NOT_STARTED, "start")
        if not isinstance(catalog, QuestionCatalog):
            catalog = QuestionCatalog(catalog)
        catalog.validate()
        root = catalog.root
        band_list = list(bands)
        warnings = self._resolver.validate(band_list, catalog.score_bounds())
        self._catalog, self._bands, self._integrity_warnings = catalog, band_list, warnings
        self._state.status = SessionStatus.IN_PROGRESS
        self._state.current_question_id = root.id
        self._state.visited = [root.id]
        self._state.started_at = datetime.now(timezone.utc)
        logger.info("quiz_session_started", session_id=str(self.session_id), root=root.id,
                    questions=len(catalog), bands=len(band_list), integrity_warnings=len(warnings))
        return root

    def answer(self, question_id: str | int, value: Any) -> Question | QuizResult:
        """Record an answer to the current question and advance.

        Returns the next question, or the final result once traversal ends.
        """
        self._require_status(SessionStatus.IN_PROGRESS, "answer")
        question_id = str(question_id)
        if question_id != self._state.current_question_id:
            raise InvalidStateError(
                f"Question '{question_id}' is not the current question "
                f"'{self._state.current_question_id}'",
                current_state=self._state.status.value,
                context=self._context("answer"),
                details={"question_id": question_id,
                         "current_question_id": self._state.current_question_id})
        question = self._catalog.require(question_id)
        decision = self._traversal.next(question, value, self._catalog, self._state.visited)
        response = QuestionResponse(question_id=question_id, value=value)
        self._state.responses[question_id] = response
        self._state.history.append(response)
        if decision.is_end:
            return self._complete(decision)
        self._state.current_question_id = decision.next_id
        self._state.visited.append(decision.next_id)
        logger.debug("quiz_question_answered", session_id=str(self.session_id),
                     question_id=question_id, next_id=decision.next_id, route=decision.route.value)
        return self._catalog.require(decision.next_id)

    def get_result(self) -> QuizResult:
        """Final result; only available once the session completed."""
        self._require_status(SessionStatus.COMPLETED, "get_result")
        return self._result

    def reset(self) -> None:
        """Discard all in-memory progress and return to NOT_STARTED."""
        previous = self._state.status
        self._state = SessionState(session_id=self._state.session_id, user_id=self._state.user_id)
        self._catalog, self._bands, self._integrity_warnings, self._result = None, [], [], None
        logger.info("quiz_session_reset", session_id=str(self.session_id), previous_status=previous.value)

    def _complete(self, decision: TraversalDecision) -> QuizResult:
        breakdown = self._scoring.total(self._catalog, self._state.responses)
        resolution = self._resolver.resolve(breakdown.total, self._bands)
        completed_at = datetime.now(timezone.utc)
        self._result = QuizResult(
            session_id=self.session_id,
            total_score=breakdown.total,
            matched_band=resolution.band,
            responses=dict(self._state.responses),
            item_scores=breakdown.item_scores,
            visited=list(self._state.visited),
            scoring_warnings=breakdown.warnings,
            integrity_warnings=self._integrity_warnings + resolution.warnings,
            completed_at=completed_at,
        )
        self._state.status = SessionStatus.COMPLETED
        self._state.completed_at = completed_at
        logger.info("quiz_session_completed", session_id=str(self.session_id),
                    total_score=breakdown.total, band=resolution.band.label if resolution.band else None,
                    end_route=decision.route.value, answered=len(self._state.responses),
                    scoring_warnings=len(breakdown.warnings))
        return self._result

    def _require_status(self, expected: SessionStatus, operation: str) -> None:
        if self._state.status != expected:
            raise InvalidStateError(
                f"Cannot {operation} while session is {self._state.status.value}",
                current_state=self._state.status.value, expected_state=expected.value,
                context=self._context(operation))

    def _context(self, operation: str) -> ErrorContext:
        return ErrorContext(operation=operation).with_session(str(self.session_id), self.user_id)


def start_session(catalog: QuestionCatalog | Iterable[Question], bands: Sequence[RiskBand] = (),
                  *, user_id: str | None = None, **components: Any) -> QuizSession:
    """Create a session and start it on ``catalog``."""
    session = QuizSession(user_id=user_id, **components)
    session.start(catalog, bands)
    return session


def submit_answer(session: QuizSession, question_id: str | int, value: Any) -> Question | QuizResult:
    """Answer the session's current question."""
    return session.answer(question_id, value)


def get_result(session: QuizSession) -> QuizResult:
    """Result of a completed session."""
    return session.get_result()
