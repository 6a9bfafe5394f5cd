"""
CellScan Quiz Service - Session Management.
Loads questionnaire content, drives isolated quiz sessions and forwards
answers and results to the response sink.
"""
from __future__ import annotations
import asyncio
from typing import Any, TYPE_CHECKING
from uuid import UUID

import structlog

from cellscan_common.exceptions import (
    ErrorContext, InvalidStateError, PersistenceError, SessionNotFoundError,
)
from cellscan_common.observability import configure_logging
from ..config import QuizEngineConfig, get_config
from ..schemas import Question
from .models import AnswerOutcome, PendingWrite, QuizResult, SessionStartResult
from .orchestrator import QuizSession
from .resolver import RiskResolver
from .scoring import ScoringEngine
from .traversal import TraversalController
from services.shared import ServiceBase

if TYPE_CHECKING:
    from ..infrastructure.repository import QuizContentRepositoryPort, ResponseSinkPort

logger = structlog.get_logger(__name__)

_RESPONSE = "response"
_RESULT = "result"


class QuizService(ServiceBase):
    """Async facade around quiz sessions; all I/O happens here, never in the sessions."""

    def __init__(self, content: QuizContentRepositoryPort,
                 sink: ResponseSinkPort | None = None,
                 config: QuizEngineConfig | None = None) -> None:
        self._config = config or get_config()
        self._content = content
        self._sink = sink
        self._scoring = ScoringEngine(self._config.scoring)
        self._traversal = TraversalController(self._config.traversal)
        self._resolver = RiskResolver(self._config.resolver)
        self._active_sessions: dict[UUID, QuizSession] = {}
        self._pending: dict[UUID, list[PendingWrite]] = {}
        self._delivery_locks: dict[UUID, asyncio.Lock] = {}
        self._initialized = False
        self._stats = {"sessions_started": 0, "sessions_completed": 0, "sessions_ended": 0,
                       "answers": 0, "writes": 0, "write_failures": 0}

    @property
    def scoring_engine(self) -> ScoringEngine:
        """Shared scoring engine; register extra question types here."""
        return self._scoring

    async def initialize(self) -> None:
        """Initialize the quiz service."""
        configure_logging(self._config.observability)
        logger.info("quiz_service_initializing")
        self._initialized = True
        logger.info("quiz_service_initialized", settings={
            "persist_responses": self._config.service.persist_responses and self._sink is not None,
            "strict_integrity": self._config.resolver.strict_integrity,
            "question_types": self._scoring.supported_types,
        })

    async def shutdown(self) -> None:
        """Shutdown the quiz service."""
        unsent = sum(len(writes) for writes in self._pending.values())
        if unsent:
            logger.warning("quiz_service_unsent_writes", pending=unsent)
        logger.info("quiz_service_shutting_down", stats=self._stats)
        self._active_sessions.clear()
        self._pending.clear()
        self._delivery_locks.clear()
        self._initialized = False

    async def start_session(self, user_id: str | None = None,
                            quiz_key: str | None = None) -> SessionStartResult:
        """Load content for ``quiz_key`` and start a new session on it."""
        if len(self._active_sessions) >= self._config.service.max_active_sessions:
            raise InvalidStateError(
                "Maximum number of active quiz sessions reached",
                context=ErrorContext(operation="start_session", user_id=user_id),
                details={"max_active_sessions": self._config.service.max_active_sessions})
        session = QuizSession(user_id=user_id, scoring=self._scoring,
                              traversal=self._traversal, resolver=self._resolver)
        root = await self._start(session, quiz_key)
        self._active_sessions[session.session_id] = session
        self._pending[session.session_id] = []
        self._delivery_locks[session.session_id] = asyncio.Lock()
        self._stats["sessions_started"] += 1
        return SessionStartResult(session_id=session.session_id, question=root,
                                  progress=session.progress,
                                  integrity_warnings=session.integrity_warnings)

    async def submit_answer(self, session_id: UUID, question_id: str | int,
                            value: Any) -> AnswerOutcome:
        """Answer the current question of a session.

        Quiz progress is kept even when the sink fails; the failure is
        reported on the outcome and the writes stay queued for
        :meth:`flush_pending`.
        """
        session = self._get_session(session_id)
        step = session.answer(question_id, value)
        self._stats["answers"] += 1
        pending = self._pending.setdefault(session_id, [])
        pending.append(PendingWrite(kind=_RESPONSE, payload=session.history[-1]))
        outcome = AnswerOutcome(session_id=session_id)
        if isinstance(step, QuizResult):
            pending.append(PendingWrite(kind=_RESULT, payload=step))
            outcome.result = step
            self._stats["sessions_completed"] += 1
        else:
            outcome.next_question = step
        _, error = await self._deliver(session)
        outcome.persisted = error is None
        outcome.persistence_error = error.user_message if error else None
        outcome.pending_writes = len(self._pending[session_id])
        return outcome

    async def flush_pending(self, session_id: UUID) -> int:
        """Retry queued sink writes and return how many were delivered.

        Raises PersistenceError if some still fail; writes sent before the
        failure stay delivered.
        """
        session = self._get_session(session_id)
        delivered, error = await self._deliver(session)
        if error is not None:
            raise error
        return delivered

    async def get_result(self, session_id: UUID) -> QuizResult:
        """Result of a completed session."""
        return self._get_session(session_id).get_result()

    async def reset_session(self, session_id: UUID, quiz_key: str | None = None) -> SessionStartResult:
        """Discard progress and start the session over on freshly loaded content."""
        session = self._get_session(session_id)
        session.reset()
        root = await self._start(session, quiz_key)
        return SessionStartResult(session_id=session_id, question=root, progress=session.progress,
                                  integrity_warnings=session.integrity_warnings)

    async def end_session(self, session_id: UUID) -> int:
        """Drop a session from memory; returns the number of writes discarded."""
        self._get_session(session_id)
        self._active_sessions.pop(session_id)
        dropped = len(self._pending.pop(session_id, []))
        self._delivery_locks.pop(session_id, None)
        if dropped:
            logger.warning("quiz_session_ended_with_unsent_writes", session_id=str(session_id),
                           dropped=dropped)
        self._stats["sessions_ended"] += 1
        return dropped

    async def get_status(self) -> dict[str, Any]:
        """Get service status."""
        return {"status": "operational" if self._initialized else "initializing",
                "initialized": self._initialized, "statistics": self._stats,
                "active_sessions": len(self._active_sessions),
                "pending_writes": sum(len(writes) for writes in self._pending.values())}

    @property
    def stats(self) -> dict[str, int]:
        """Get service statistics counters."""
        return self._stats

    async def _start(self, session: QuizSession, quiz_key: str | None) -> Question:
        key = quiz_key or self._config.service.default_quiz_key
        questions = await self._content.list_questions(key)
        bands = await self._content.list_risk_bands(key)
        return session.start(questions, bands)

    async def _deliver(self, session: QuizSession) -> tuple[int, PersistenceError | None]:
        """Send queued writes in order, stopping at the first failure.

        Returns the number of writes delivered and the failure, if any.
        One delivery loop runs per session at a time.
        """
        pending = self._pending.setdefault(session.session_id, [])
        if self._sink is None or not self._config.service.persist_responses:
            pending.clear()
            return 0, None
        lock = self._delivery_locks.setdefault(session.session_id, asyncio.Lock())
        delivered = 0
        async with lock:
            while pending:
                write = pending[0]
                try:
                    if write.kind == _RESULT:
                        await self._sink.save_result(session.session_id, session.user_id, write.payload)
                    else:
                        await self._sink.save_response(session.session_id, session.user_id, write.payload)
                except Exception as e:
                    self._stats["write_failures"] += 1
                    return delivered, PersistenceError(
                        f"Response sink failed to save {write.kind}", operation=f"save_{write.kind}",
                        pending=len(pending), cause=e,
                        context=ErrorContext(operation="deliver").with_session(
                            str(session.session_id), session.user_id))
                pending.pop(0)
                delivered += 1
                self._stats["writes"] += 1
        return delivered, None

    def _get_session(self, session_id: UUID) -> QuizSession:
        session = self._active_sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(str(session_id))
        return session
