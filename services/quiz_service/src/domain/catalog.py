"""
CellScan Quiz Service - Question Catalog.
Ordered, validated collection of questions handed to a session.
"""
from __future__ import annotations
from collections import Counter
from decimal import Decimal
from typing import Any, Iterable, Iterator, Mapping
from pydantic import ValidationError as PydanticValidationError
import structlog

from cellscan_common.exceptions import DataIntegrityError
from ..schemas import Question, QuestionType, RiskBand
from .scoring import round_half_up

logger = structlog.get_logger(__name__)


def question_from_record(record: Mapping[str, Any]) -> Question:
    """Build a question from a content-store row."""
    try:
        return Question.model_validate(dict(record))
    except PydanticValidationError as e:
        raise DataIntegrityError(f"Malformed question record: {record.get('id')!r}",
                                 issues=[err["msg"] for err in e.errors()], cause=e) from e


def band_from_record(record: Mapping[str, Any]) -> RiskBand:
    """Build a risk band from a content-store row."""
    try:
        band = RiskBand.model_validate(dict(record))
    except PydanticValidationError as e:
        raise DataIntegrityError("Malformed risk band record",
                                 issues=[err["msg"] for err in e.errors()], cause=e) from e
    if band.min_score > band.max_score:
        raise DataIntegrityError(f"Risk band '{band.label}' has min_score above max_score",
                                 issues=[f"band {band.label}: {band.min_score} > {band.max_score}"])
    return band


class QuestionCatalog:
    """Questions in display order with id lookup."""

    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions: list[Question] = list(questions)
        self._positions: dict[str, int] = {}
        for position, question in enumerate(self._questions):
            self._positions.setdefault(question.id, position)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> QuestionCatalog:
        return cls(question_from_record(record) for record in records)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __len__(self) -> int:
        return len(self._questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._positions

    @property
    def ids(self) -> list[str]:
        return [q.id for q in self._questions]

    def get(self, question_id: str) -> Question | None:
        position = self._positions.get(question_id)
        return None if position is None else self._questions[position]

    def require(self, question_id: str) -> Question:
        """Get a question or fail with a data integrity error."""
        question = self.get(question_id)
        if question is None:
            raise DataIntegrityError(f"Question '{question_id}' is not in the catalog",
                                     issues=[f"missing question {question_id}"])
        return question

    def next_after(self, question_id: str) -> Question | None:
        """Question that follows ``question_id`` by position."""
        position = self._positions.get(question_id)
        if position is None or position + 1 >= len(self._questions):
            return None
        return self._questions[position + 1]

    @property
    def root(self) -> Question:
        """Entry point: the single flagged root, else the first question."""
        if not self._questions:
            raise DataIntegrityError("Question catalog is empty", issues=["empty catalog"])
        roots = [q for q in self._questions if q.is_root]
        if len(roots) > 1:
            raise DataIntegrityError("Question catalog flags more than one root",
                                     issues=[f"roots: {', '.join(q.id for q in roots)}"])
        return roots[0] if roots else self._questions[0]

    def integrity_issues(self) -> list[str]:
        """List every content invariant the catalog violates."""
        if not self._questions:
            return ["empty catalog"]
        issues: list[str] = []
        duplicates = [qid for qid, count in Counter(self.ids).items() if count > 1]
        issues.extend(f"duplicate question id {qid}" for qid in duplicates)
        roots = [q.id for q in self._questions if q.is_root]
        if len(roots) > 1:
            issues.append(f"multiple root questions: {', '.join(roots)}")
        for question in self._questions:
            for key, target in (question.branch_map or {}).items():
                if target not in self._positions:
                    issues.append(f"question {question.id} branch '{key}' targets missing question {target}")
            issues.extend(self._option_issues(question))
        return issues

    @staticmethod
    def _option_issues(question: Question) -> list[str]:
        if question.question_type == QuestionType.RANGE:
            bounds = question.bounds
            if bounds is None:
                return [f"range question {question.id} needs numeric min and max"]
            if bounds[0] > bounds[1]:
                return [f"range question {question.id} has min above max"]
        elif question.question_type == QuestionType.SELECT:
            choices = question.choices
            if not choices:
                return [f"select question {question.id} has no options"]
            if len(set(choices)) != len(choices):
                return [f"select question {question.id} has duplicate options"]
        return []

    def validate(self) -> None:
        """Raise DataIntegrityError when any invariant is violated."""
        issues = self.integrity_issues()
        if issues:
            raise DataIntegrityError(f"Question catalog failed validation ({len(issues)} issues)",
                                     issues=issues)
        logger.debug("catalog_validated", questions=len(self._questions),
                     branching=sum(1 for q in self._questions if q.branch_map))

    def score_bounds(self) -> tuple[int, int]:
        """Lowest and highest total reachable if every question were answered."""
        low = high = 0
        for question in self._questions:
            points = round_half_up(Decimal(str(question.weight)))
            low += min(0, points)
            high += max(0, points)
        return low, high
