"""
CellScan Quiz Service - Repository Layer.
Ports for loading questionnaire content and persisting answers.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from uuid import UUID

from ..domain.models import QuestionResponse, QuizResult
from ..schemas import Question, RiskBand


class QuizContentRepositoryPort(ABC):
    """Abstract port for questionnaire content."""

    @abstractmethod
    async def list_questions(self, quiz_key: str) -> list[Question]:
        """Questions of a quiz ordered by their stable key."""

    @abstractmethod
    async def list_risk_bands(self, quiz_key: str) -> list[RiskBand]:
        """Risk bands configured for a quiz."""


class ResponseSinkPort(ABC):
    """Abstract port receiving answers and results for storage."""

    @abstractmethod
    async def save_response(self, session_id: UUID, user_id: str | None,
                            response: QuestionResponse) -> None:
        """Persist one answer."""

    @abstractmethod
    async def save_result(self, session_id: UUID, user_id: str | None, result: QuizResult) -> None:
        """Persist the final result of a session."""
