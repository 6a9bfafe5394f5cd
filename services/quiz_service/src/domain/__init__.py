"""Quiz Service domain layer - Traversal, scoring and risk resolution."""
from .catalog import QuestionCatalog, band_from_record, question_from_record
from .orchestrator import QuizSession, get_result, start_session, submit_answer
from .resolver import RiskResolver
from .scoring import (
    BooleanScorer, QuestionScorer, RangeScorer, ScoringEngine, SelectScorer, round_half_up,
)
from .service import QuizService
from .traversal import TraversalController, branch_key

__all__ = [
    "QuestionCatalog", "band_from_record", "question_from_record",
    "QuizSession", "start_session", "submit_answer", "get_result",
    "RiskResolver",
    "ScoringEngine", "QuestionScorer", "BooleanScorer", "RangeScorer", "SelectScorer", "round_half_up",
    "QuizService",
    "TraversalController", "branch_key",
]
