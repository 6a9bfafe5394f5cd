"""
CellScan Quiz Service - Response Scoring.
Type-dispatched scoring of individual responses and session totals.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Mapping, TYPE_CHECKING
import structlog

from ..config import ScoringSettings
from ..schemas import Question, QuestionType, ScoringWarning
from .models import QuestionResponse, ScoreBreakdown, ScoreOutcome

if TYPE_CHECKING:
    from .catalog import QuestionCatalog

logger = structlog.get_logger(__name__)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    with localcontext() as ctx:
        # quantize needs room for every integer digit of the result
        ctx.prec = max(ctx.prec, value.adjusted() + 2)
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _decimal(value: float | int) -> Decimal:
    return Decimal(str(value))


def _warning(question: Question, code: str, message: str, value: Any = None) -> ScoringWarning:
    return ScoringWarning(question_id=question.id, code=code, message=message,
                          value=None if value is None else repr(value))


class QuestionScorer(ABC):
    """Scores responses for one question type."""

    @abstractmethod
    def score(self, question: Question, value: Any) -> ScoreOutcome:
        """Return the contribution of ``value`` to the total score."""


class BooleanScorer(QuestionScorer):
    """Full weight when the answer matches the risk-positive value."""

    _ALIASES = {"true": "yes", "false": "no"}

    def __init__(self, default_positive_value: str = "yes") -> None:
        self._default_positive = default_positive_value

    @classmethod
    def normalize(cls, value: Any) -> str | None:
        """Fold bools and yes/no strings to a canonical token."""
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, str):
            token = value.strip().lower()
            return cls._ALIASES.get(token, token) or None
        return None

    def score(self, question: Question, value: Any) -> ScoreOutcome:
        answer = self.normalize(value)
        if answer is None:
            return ScoreOutcome(warning=_warning(question, "type_mismatch",
                                                 "boolean question expects a yes/no answer", value))
        configured = question.positive_value
        positive = self.normalize(configured if configured is not None else self._default_positive)
        if answer == positive:
            return ScoreOutcome(points=round_half_up(_decimal(question.weight)))
        return ScoreOutcome()


class RangeScorer(QuestionScorer):
    """Linear interpolation of the answer between the configured bounds."""

    def __init__(self, clamp: bool = True) -> None:
        self._clamp = clamp

    @staticmethod
    def to_number(value: Any) -> Decimal | None:
        """Parse numbers and numeric strings; bools and non-finite values are rejected."""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = _decimal(value)
        elif isinstance(value, str):
            try:
                number = Decimal(value.strip())
            except InvalidOperation:
                return None
        else:
            return None
        return number if number.is_finite() else None

    def score(self, question: Question, value: Any) -> ScoreOutcome:
        bounds = question.bounds
        if bounds is None:
            return ScoreOutcome(warning=_warning(question, "invalid_options",
                                                 "range question has no usable min/max"))
        number = self.to_number(value)
        if number is None:
            return ScoreOutcome(warning=_warning(question, "type_mismatch",
                                                 "range question expects a numeric answer", value))
        low, high = _decimal(bounds[0]), _decimal(bounds[1])
        if high == low:
            fraction = Decimal(1) if number >= high else Decimal(0)
        else:
            fraction = (number - low) / (high - low)
        if fraction < 0 or fraction > 1:
            if not self._clamp:
                return ScoreOutcome(warning=_warning(question, "out_of_range",
                                                     f"answer outside [{bounds[0]}, {bounds[1]}]", value))
            fraction = min(max(fraction, Decimal(0)), Decimal(1))
        return ScoreOutcome(points=round_half_up(fraction * _decimal(question.weight)))


class SelectScorer(QuestionScorer):
    """Position of the chosen option scaled onto the weight."""

    def score(self, question: Question, value: Any) -> ScoreOutcome:
        choices = question.choices
        if not choices:
            return ScoreOutcome(warning=_warning(question, "invalid_options",
                                                 "select question has no options"))
        if not isinstance(value, str) or value not in choices:
            return ScoreOutcome(warning=_warning(question, "unknown_option",
                                                 "answer is not one of the question options", value))
        weight = _decimal(question.weight)
        if len(choices) == 1:
            return ScoreOutcome(points=round_half_up(weight))
        position = Decimal(choices.index(value)) / Decimal(len(choices) - 1)
        return ScoreOutcome(points=round_half_up(position * weight))


class ScoringEngine:
    """Dispatches responses to the scorer registered for the question type."""

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self._settings = settings or ScoringSettings()
        self._scorers: dict[str, QuestionScorer] = {
            QuestionType.BOOLEAN.value: BooleanScorer(self._settings.default_positive_value),
            QuestionType.RANGE.value: RangeScorer(clamp=self._settings.clamp_range_values),
            QuestionType.SELECT.value: SelectScorer(),
        }

    def register(self, question_type: QuestionType | str, scorer: QuestionScorer) -> None:
        """Add or replace the scorer for a question type."""
        key = question_type.value if isinstance(question_type, QuestionType) else str(question_type)
        self._scorers[key] = scorer
        logger.info("scorer_registered", question_type=key, scorer=type(scorer).__name__)

    def supports(self, question_type: QuestionType | str) -> bool:
        key = question_type.value if isinstance(question_type, QuestionType) else str(question_type)
        return key in self._scorers

    @property
    def supported_types(self) -> list[str]:
        return sorted(self._scorers)

    def score(self, question: Question, value: Any) -> ScoreOutcome:
        """Score a single response. Never raises for bad answers."""
        scorer = self._scorers.get(question.type_key)
        if scorer is None:
            return ScoreOutcome(warning=_warning(question, "unknown_type",
                                                 f"no scorer for question type '{question.type_key}'"))
        return scorer.score(question, value)

    def total(self, catalog: QuestionCatalog,
              responses: Mapping[str, QuestionResponse]) -> ScoreBreakdown:
        """Sum contributions of all responses against the current catalog entries."""
        breakdown = ScoreBreakdown()
        for question in catalog:
            response = responses.get(question.id)
            if response is None:
                continue
            outcome = self.score(question, response.value)
            breakdown.item_scores[question.id] = outcome.points
            breakdown.total += outcome.points
            if outcome.warning is not None:
                breakdown.warnings.append(outcome.warning)
        for question_id in responses:
            if question_id not in catalog:
                breakdown.warnings.append(ScoringWarning(
                    question_id=question_id, code="unknown_question",
                    message="response refers to a question missing from the catalog"))
        logger.debug("responses_scored", total=breakdown.total, answered=len(breakdown.item_scores),
                     warnings=len(breakdown.warnings))
        return breakdown
