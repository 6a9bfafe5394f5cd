"""
CellScan Quiz Service - Content Schemas.
Pydantic models for questionnaire content and non-fatal warnings.
"""
from __future__ import annotations
import math
from enum import Enum
from typing import Any
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, Enum):
    """Built-in question types."""
    BOOLEAN = "boolean"
    RANGE = "range"
    SELECT = "select"


class SessionStatus(str, Enum):
    """Quiz session lifecycle states."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TraversalRoute(str, Enum):
    """How the traversal controller chose the next question."""
    BRANCH = "branch"
    DEFAULT = "default"
    SEQUENTIAL = "sequential"
    END_OF_CATALOG = "end_of_catalog"
    LOOP_GUARD = "loop_guard"
    STEP_LIMIT = "step_limit"


DEFAULT_BRANCH_KEY = "default"


def branch_key(value: Any) -> str | None:
    """Map a response or branch map key onto a canonical key; None when it has none."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return str(int(value)) if value.is_integer() else str(value)
    return None


class Question(BaseModel):
    """A single questionnaire entry as supplied by the content store."""
    id: str
    question_type: QuestionType | str = Field(validation_alias=AliasChoices("question_type", "type"))
    weight: float = Field(default=0.0, allow_inf_nan=False)
    options: dict[str, Any] | list[str] | None = None
    branch_map: dict[str, str] | None = Field(
        default=None,
        validation_alias=AliasChoices("branch_map", "next_question_logic", "next_question_mapping"),
    )
    is_root: bool = False
    text: str = Field(default="", validation_alias=AliasChoices("text", "question_text"))
    category: str | None = Field(default=None, validation_alias=AliasChoices("category", "symptom_category"))
    metadata: dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("question_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> QuestionType | str:
        try:
            return QuestionType(value)
        except ValueError:
            return str(value)

    @field_validator("is_root", mode="before")
    @classmethod
    def _coerce_root(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("branch_map", mode="before")
    @classmethod
    def _coerce_branch_map(cls, value: Any) -> dict[str, str] | None:
        if not value:
            return None
        branches: dict[str, str] = {}
        for key, target in dict(value).items():
            canonical = branch_key(key)
            branches[canonical if canonical is not None else str(key)] = str(target)
        return branches

    @model_validator(mode="before")
    @classmethod
    def _unwrap_select_options(cls, data: Any) -> Any:
        # Store rows nest select labels as {"options": [...]}.
        if isinstance(data, dict):
            options = data.get("options")
            if isinstance(options, dict) and isinstance(options.get("options"), list):
                data = {**data, "options": options["options"]}
        return data

    @property
    def type_key(self) -> str:
        """Question type as a plain string for registry lookups."""
        return self.question_type.value if isinstance(self.question_type, QuestionType) else str(self.question_type)

    @property
    def choices(self) -> list[str]:
        """Ordered option labels for select questions."""
        if isinstance(self.options, list):
            return list(self.options)
        return []

    @property
    def bounds(self) -> tuple[float, float] | None:
        """(min, max) for range questions, None when not configured."""
        if not isinstance(self.options, dict):
            return None
        low, high = self.options.get("min"), self.options.get("max")
        if low is None or high is None:
            return None
        try:
            return float(low), float(high)
        except (TypeError, ValueError):
            return None

    @property
    def positive_value(self) -> Any:
        """Configured risk-positive answer for boolean questions, if any."""
        if isinstance(self.options, dict):
            return self.options.get("positive_value")
        return None


class RiskBand(BaseModel):
    """Inclusive score interval mapped to a named risk level."""
    min_score: int
    max_score: int
    label: str = Field(validation_alias=AliasChoices("label", "risk_level", "condition_name"))
    recommendation: str = ""
    description: str = ""
    followup_actions: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(frozen=True, extra="ignore")

    def contains(self, score: int) -> bool:
        """Check inclusive containment."""
        return self.min_score <= score <= self.max_score


class ScoringWarning(BaseModel):
    """Non-fatal scoring problem; the response contributed zero."""
    question_id: str | None = None
    code: str
    message: str
    value: str | None = None
    model_config = ConfigDict(frozen=True)


class IntegrityWarning(BaseModel):
    """Non-fatal content integrity problem found while resolving bands."""
    code: str
    message: str
    labels: list[str] = Field(default_factory=list)
    model_config = ConfigDict(frozen=True)
