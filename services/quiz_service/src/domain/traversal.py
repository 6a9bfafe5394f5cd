"""
CellScan Quiz Service - Question Traversal.
Chooses the next question from branch maps with sequential fallthrough.
"""
from __future__ import annotations
from typing import Any, Sequence
import structlog

from cellscan_common.exceptions import DataIntegrityError
from ..config import TraversalSettings
from ..schemas import DEFAULT_BRANCH_KEY, Question, TraversalRoute, branch_key
from .catalog import QuestionCatalog
from .models import TraversalDecision

logger = structlog.get_logger(__name__)


class TraversalController:
    """Branch key, then default, then catalog order; never revisits a question."""

    def __init__(self, settings: TraversalSettings | None = None) -> None:
        self._settings = settings or TraversalSettings()

    def next(self, question: Question, value: Any, catalog: QuestionCatalog,
             visited: Sequence[str] = ()) -> TraversalDecision:
        """Decide where to go after ``question`` was answered with ``value``."""
        target, route = self._target(question, value, catalog)
        if target is None:
            return TraversalDecision(None, TraversalRoute.END_OF_CATALOG)
        if target not in catalog:
            raise DataIntegrityError(
                f"Question {question.id} branches to missing question {target}",
                issues=[f"question {question.id} targets missing question {target}"])
        if target in visited:
            logger.warning("traversal_loop_prevented", question_id=question.id,
                           target=target, route=route.value)
            return TraversalDecision(None, TraversalRoute.LOOP_GUARD)
        if len(visited) >= self._settings.max_steps:
            logger.warning("traversal_step_limit_reached", question_id=question.id,
                           max_steps=self._settings.max_steps)
            return TraversalDecision(None, TraversalRoute.STEP_LIMIT)
        return TraversalDecision(target, route)

    @staticmethod
    def _target(question: Question, value: Any,
                catalog: QuestionCatalog) -> tuple[str | None, TraversalRoute]:
        branches = question.branch_map or {}
        key = branch_key(value)
        if key is not None and key in branches:
            return branches[key], TraversalRoute.BRANCH
        if DEFAULT_BRANCH_KEY in branches:
            return branches[DEFAULT_BRANCH_KEY], TraversalRoute.DEFAULT
        following = catalog.next_after(question.id)
        if following is None:
            return None, TraversalRoute.END_OF_CATALOG
        return following.id, TraversalRoute.SEQUENTIAL
