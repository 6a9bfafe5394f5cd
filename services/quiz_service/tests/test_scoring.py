"""
Unit tests for Quiz Service response scoring.
Covers boolean, range and select scorers plus the type registry.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Any
import pytest
from pydantic import ValidationError

from services.quiz_service.src.config import ScoringSettings
from services.quiz_service.src.domain.catalog import QuestionCatalog
from services.quiz_service.src.domain.models import QuestionResponse, ScoreOutcome
from services.quiz_service.src.domain.scoring import (
    BooleanScorer, QuestionScorer, RangeScorer, ScoringEngine, SelectScorer, round_half_up,
)
from services.quiz_service.src.schemas import Question, QuestionType
from services.quiz_service.tests.fixtures import boolean_question, range_question, select_question


def _responses(**answers: Any) -> dict[str, QuestionResponse]:
    return {qid: QuestionResponse(question_id=qid, value=value) for qid, value in answers.items()}


class TestRoundHalfUp:
    """Tests for integer rounding of contributions."""

    @pytest.mark.parametrize("value,expected", [
        ("4.5", 5), ("4.4", 4), ("0.5", 1), ("-4.5", -5), ("15", 15),
    ])
    def test_rounding(self, value: str, expected: int) -> None:
        assert round_half_up(Decimal(value)) == expected

    def test_values_beyond_default_precision(self) -> None:
        """Large magnitudes round without running out of digits."""
        assert round_half_up(Decimal("1E+30")) == 10 ** 30
        assert round_half_up(Decimal("123456789012345678901234567890.5")) == 123456789012345678901234567891
        assert round_half_up(Decimal("-9.5E+40")) == -95 * 10 ** 39

    def test_large_weight_scores(self) -> None:
        assert BooleanScorer().score(boolean_question(1, 1e30), "yes").points == 10 ** 30

    @pytest.mark.parametrize("weight", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_weight_rejected(self, weight: float) -> None:
        with pytest.raises(ValidationError):
            boolean_question(1, weight)


class TestBooleanScorer:
    """Tests for boolean questions."""

    def setup_method(self) -> None:
        self.scorer = BooleanScorer()

    def test_three_questions_sum_positive_weights(self) -> None:
        """Weights 10, 20, 5 answered yes, no, yes total 15."""
        catalog = QuestionCatalog([boolean_question(1, 10), boolean_question(2, 20),
                                   boolean_question(3, 5)])
        breakdown = ScoringEngine().total(catalog, _responses(**{"1": "yes", "2": "no", "3": "yes"}))
        assert breakdown.total == 15
        assert breakdown.item_scores == {"1": 10, "2": 0, "3": 5}
        assert breakdown.warnings == []

    @pytest.mark.parametrize("value", [True, "yes", "YES", " Yes ", "true"])
    def test_positive_answers(self, value: Any) -> None:
        assert self.scorer.score(boolean_question(1, 7), value).points == 7

    @pytest.mark.parametrize("value", [False, "no", "false", "maybe"])
    def test_non_positive_answers(self, value: Any) -> None:
        outcome = self.scorer.score(boolean_question(1, 7), value)
        assert outcome.points == 0
        assert outcome.warning is None

    @pytest.mark.parametrize("value", [None, 1, 3.5, ["yes"], ""])
    def test_type_mismatch_scores_zero_with_warning(self, value: Any) -> None:
        outcome = self.scorer.score(boolean_question(1, 7), value)
        assert outcome.points == 0
        assert outcome.warning is not None
        assert outcome.warning.code == "type_mismatch"
        assert outcome.warning.question_id == "1"

    def test_configured_positive_value(self) -> None:
        """Questions can flag 'no' as the risk-positive answer."""
        question = boolean_question(1, 4, options={"positive_value": "no"})
        assert self.scorer.score(question, "no").points == 4
        assert self.scorer.score(question, "yes").points == 0

    def test_default_positive_value_from_settings(self) -> None:
        engine = ScoringEngine(ScoringSettings(default_positive_value="true"))
        assert engine.score(boolean_question(1, 3), True).points == 3
        assert engine.score(boolean_question(1, 3), "no").points == 0

    def test_fractional_weight_is_rounded(self) -> None:
        assert self.scorer.score(boolean_question(1, 2.5), "yes").points == 3


class TestRangeScorer:
    """Tests for range questions."""

    def setup_method(self) -> None:
        self.scorer = RangeScorer()
        self.question = range_question(1, 0, 10, 30)

    def test_midpoint(self) -> None:
        assert self.scorer.score(self.question, 5).points == 15

    def test_below_minimum_is_clamped(self) -> None:
        outcome = self.scorer.score(self.question, -3)
        assert outcome.points == 0
        assert outcome.warning is None

    def test_above_maximum_is_clamped(self) -> None:
        assert self.scorer.score(self.question, 42).points == 30

    @pytest.mark.parametrize("value", [0, 2.5, 5, 7, 10])
    def test_contribution_within_weight(self, value: float) -> None:
        points = self.scorer.score(self.question, value).points
        assert 0 <= points <= 30

    @pytest.mark.parametrize("low,high,weight", [
        (0, 10, 30), (0, 10, 7.5), (-5, 5, 3), (0, 1, 0.4), (10, 20, -12), (0, 3, -2.5),
    ])
    def test_contribution_is_monotonic(self, low: float, high: float, weight: float) -> None:
        """Contributions move one way as the answer rises, following the weight's sign."""
        question = range_question(1, low, high, weight)
        steps = 40
        values = [low + (high - low) * i / steps for i in range(steps + 1)]
        points = [self.scorer.score(question, value).points for value in values]
        if weight < 0:
            points = [-p for p in points]
        assert all(later >= earlier for earlier, later in zip(points, points[1:]))
        assert self.scorer.score(question, low).points == 0
        assert self.scorer.score(question, high).points == round_half_up(Decimal(str(weight)))
        assert self.scorer.score(question, low - 1).points == 0
        assert self.scorer.score(question, high + 1).points == round_half_up(Decimal(str(weight)))

    def test_numeric_string_accepted(self) -> None:
        assert self.scorer.score(self.question, " 5 ").points == 15

    @pytest.mark.parametrize("value", ["abc", True, None, float("nan"), float("inf")])
    def test_non_numeric_warns(self, value: Any) -> None:
        outcome = self.scorer.score(self.question, value)
        assert outcome.points == 0
        assert outcome.warning.code == "type_mismatch"

    def test_missing_bounds_warns(self) -> None:
        question = Question(id="r", question_type="range", weight=10, options={"min": 0})
        outcome = self.scorer.score(question, 5)
        assert outcome.points == 0
        assert outcome.warning.code == "invalid_options"

    def test_degenerate_range(self) -> None:
        """Equal bounds give full weight at or above the bound and nothing below."""
        question = range_question(1, 5, 5, 8)
        assert self.scorer.score(question, 5).points == 8
        assert self.scorer.score(question, 9).points == 8
        assert self.scorer.score(question, 4).points == 0

    def test_without_clamping_out_of_range_warns(self) -> None:
        scorer = RangeScorer(clamp=False)
        outcome = scorer.score(self.question, -3)
        assert outcome.points == 0
        assert outcome.warning.code == "out_of_range"
        assert scorer.score(self.question, 10).points == 30


class TestSelectScorer:
    """Tests for select questions."""

    def setup_method(self) -> None:
        self.scorer = SelectScorer()
        self.question = select_question(1, ["Low", "Medium", "High"], 9)

    def test_middle_option_rounds_half_up(self) -> None:
        """(1/2) * 9 = 4.5 rounds to 5."""
        assert self.scorer.score(self.question, "Medium").points == 5

    def test_first_and_last_options(self) -> None:
        assert self.scorer.score(self.question, "Low").points == 0
        assert self.scorer.score(self.question, "High").points == 9

    def test_single_option_scores_full_weight(self) -> None:
        question = select_question(1, ["Only"], 6)
        assert self.scorer.score(question, "Only").points == 6

    @pytest.mark.parametrize("value", ["medium", "Unknown", 1, None])
    def test_unknown_option_warns(self, value: Any) -> None:
        outcome = self.scorer.score(self.question, value)
        assert outcome.points == 0
        assert outcome.warning.code == "unknown_option"

    def test_store_shaped_options_are_unwrapped(self) -> None:
        question = Question.model_validate({"id": 4, "type": "select", "weight": 9,
                                            "options": {"options": ["Low", "Medium", "High"]}})
        assert question.choices == ["Low", "Medium", "High"]
        assert self.scorer.score(question, "High").points == 9


class _FlatScorer(QuestionScorer):
    def score(self, question: Question, value: Any) -> ScoreOutcome:
        return ScoreOutcome(points=1)


class TestScoringEngine:
    """Tests for type dispatch and totals."""

    def setup_method(self) -> None:
        self.engine = ScoringEngine()

    def test_built_in_types(self) -> None:
        assert self.engine.supported_types == ["boolean", "range", "select"]
        assert self.engine.supports(QuestionType.RANGE)
        assert not self.engine.supports("free_text")

    def test_unknown_type_scores_zero_with_warning(self) -> None:
        question = Question(id="x", question_type="free_text", weight=5)
        outcome = self.engine.score(question, "anything")
        assert outcome.points == 0
        assert outcome.warning.code == "unknown_type"

    def test_register_new_type(self) -> None:
        self.engine.register("free_text", _FlatScorer())
        question = Question(id="x", question_type="free_text", weight=5)
        assert self.engine.supports("free_text")
        assert self.engine.score(question, "anything").points == 1

    def test_total_skips_unanswered_questions(self) -> None:
        catalog = QuestionCatalog([boolean_question(1, 10), range_question(2, 0, 10, 30),
                                   select_question(3, ["Low", "Medium", "High"], 9)])
        breakdown = self.engine.total(catalog, _responses(**{"2": 5, "3": "Medium"}))
        assert breakdown.total == 20
        assert "1" not in breakdown.item_scores

    def test_total_collects_warnings(self) -> None:
        catalog = QuestionCatalog([boolean_question(1, 10), boolean_question(2, 10)])
        breakdown = self.engine.total(catalog, _responses(**{"1": 3, "2": "yes", "9": "yes"}))
        assert breakdown.total == 10
        assert [w.code for w in breakdown.warnings] == ["type_mismatch", "unknown_question"]

    def test_total_uses_current_weights(self) -> None:
        """Totals are recomputed from the catalog given, not from earlier scores."""
        answers = _responses(**{"1": "yes"})
        assert self.engine.total(QuestionCatalog([boolean_question(1, 10)]), answers).total == 10
        assert self.engine.total(QuestionCatalog([boolean_question(1, 12)]), answers).total == 12

    def test_order_independent(self) -> None:
        catalog = QuestionCatalog([boolean_question(1, 10), range_question(2, 0, 10, 30)])
        forward = _responses(**{"1": "yes", "2": 7})
        backward = dict(reversed(list(forward.items())))
        assert self.engine.total(catalog, forward).total == self.engine.total(catalog, backward).total
