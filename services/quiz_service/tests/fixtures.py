"""
CellScan Quiz Service - Test Fixtures.
In-memory content and sink implementations for testing purposes only.
"""
from __future__ import annotations
import asyncio
import os
from typing import Any
from uuid import UUID
import structlog

from services.quiz_service.src.domain.models import QuestionResponse, QuizResult
from services.quiz_service.src.infrastructure.repository import (
    QuizContentRepositoryPort, ResponseSinkPort,
)
from services.quiz_service.src.schemas import Question, RiskBand

logger = structlog.get_logger(__name__)


class InMemoryQuizContentRepository(QuizContentRepositoryPort):
    """In-memory implementation of quiz content."""

    def __init__(self) -> None:
        if os.getenv("ENVIRONMENT") == "production":
            raise RuntimeError("In-memory repositories are not allowed in production.")
        self._questions: dict[str, list[Question]] = {}
        self._bands: dict[str, list[RiskBand]] = {}
        self._stats = {"queries": 0}

    def add_quiz(self, quiz_key: str, questions: list[Question | dict[str, Any]],
                 bands: list[RiskBand | dict[str, Any]] = ()) -> None:
        """Register content for a quiz key; dicts are validated like store rows."""
        self._questions[quiz_key] = [q if isinstance(q, Question) else Question.model_validate(q)
                                     for q in questions]
        self._bands[quiz_key] = [b if isinstance(b, RiskBand) else RiskBand.model_validate(b)
                                 for b in bands]

    async def list_questions(self, quiz_key: str) -> list[Question]:
        self._stats["queries"] += 1
        return list(self._questions.get(quiz_key, []))

    async def list_risk_bands(self, quiz_key: str) -> list[RiskBand]:
        self._stats["queries"] += 1
        return list(self._bands.get(quiz_key, []))


class InMemoryResponseSink(ResponseSinkPort):
    """In-memory response sink; ``failing`` makes every write raise, ``delay`` slows each one."""

    def __init__(self) -> None:
        if os.getenv("ENVIRONMENT") == "production":
            raise RuntimeError("In-memory repositories are not allowed in production.")
        self.responses: list[tuple[UUID, str | None, QuestionResponse]] = []
        self.results: list[tuple[UUID, str | None, QuizResult]] = []
        self.failing = False
        self.delay = 0.0

    async def save_response(self, session_id: UUID, user_id: str | None,
                            response: QuestionResponse) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failing:
            raise ConnectionError("response store unreachable")
        self.responses.append((session_id, user_id, response))
        logger.debug("response_saved", session_id=str(session_id), question_id=response.question_id)

    async def save_result(self, session_id: UUID, user_id: str | None, result: QuizResult) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failing:
            raise ConnectionError("response store unreachable")
        self.results.append((session_id, user_id, result))
        logger.debug("result_saved", session_id=str(session_id), total_score=result.total_score)


def boolean_question(qid: str | int, weight: float, **extra: Any) -> Question:
    return Question(id=qid, question_type="boolean", weight=weight, **extra)


def range_question(qid: str | int, low: float, high: float, weight: float, **extra: Any) -> Question:
    return Question(id=qid, question_type="range", weight=weight,
                    options={"min": low, "max": high}, **extra)


def select_question(qid: str | int, options: list[str], weight: float, **extra: Any) -> Question:
    return Question(id=qid, question_type="select", weight=weight, options=options, **extra)


def standard_bands() -> list[RiskBand]:
    return [RiskBand(min_score=0, max_score=10, label="Low"),
            RiskBand(min_score=11, max_score=20, label="Medium"),
            RiskBand(min_score=21, max_score=100, label="High")]
