"""Category and question models for the recommendation flow.

Each question type maps to a UI component and to exactly one answer shape:

    - single_select: pick one option           → TextAnswer
    - brand_select:  pick one brand option     → TextAnswer
    - text_input:    free text                 → TextAnswer
    - multi_select:  pick up to 3 options      → ChoicesAnswer
    - range:         numeric budget slider     → RangeAnswer

The mapping lives on :attr:`Question.answer_kind` so every consumer (flow
engine, CLI, tests) resolves it the same way.
"""

from __future__ import annotations

import enum
from typing import List, Optional

from pydantic import model_validator

from shopai.models.answer import AnswerKind
from shopai.models.base import APIModel


class QuestionType(str, enum.Enum):
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    RANGE = "range"
    BRAND_SELECT = "brand_select"
    TEXT_INPUT = "text_input"


# Fixed question type → answer shape mapping.
ANSWER_KINDS: dict[QuestionType, AnswerKind] = {
    QuestionType.SINGLE_SELECT: AnswerKind.TEXT,
    QuestionType.BRAND_SELECT: AnswerKind.TEXT,
    QuestionType.TEXT_INPUT: AnswerKind.TEXT,
    QuestionType.MULTI_SELECT: AnswerKind.CHOICES,
    QuestionType.RANGE: AnswerKind.RANGE,
}


class QuestionOption(APIModel):
    """A selectable option.  ``value`` is what gets submitted."""

    id: str
    label: str
    value: str
    icon: Optional[str] = None


class BudgetPreset(APIModel):
    """A named quick-select range (e.g. "Under £50")."""

    label: str
    min: float
    max: float


class RangeConfig(APIModel):
    """Slider bounds for a range question."""

    min: float
    max: float
    step: float = 1.0
    currency: str = "GBP"
    presets: List[BudgetPreset] = []

    @model_validator(mode="after")
    def _chk(self):
        if self.min > self.max:
            raise ValueError("range min must be <= max")
        if self.step <= 0:
            raise ValueError("range step must be positive")
        return self


class Question(APIModel):
    id: str
    text: str
    type: QuestionType
    required: bool = True
    options: Optional[List[QuestionOption]] = None
    range_config: Optional[RangeConfig] = None
    dynamic_options: Optional[bool] = None
    placeholder: Optional[str] = None

    @property
    def answer_kind(self) -> AnswerKind:
        """The single answer shape this question accepts."""
        return ANSWER_KINDS[self.type]

    @property
    def option_values(self) -> list[str]:
        return [o.value for o in self.options or []]


class QuestionFlowConfig(APIModel):
    questions: List[Question] = []


class Subcategory(APIModel):
    """Leaf selector that decides which question list applies."""

    id: str
    name: str
    icon: str
    category_id: str
    question_flow: Optional[QuestionFlowConfig] = None


class Category(APIModel):
    id: str
    name: str
    icon: str
    description: str
    subcategories: List[Subcategory] = []


class QuestionSet(APIModel):
    """Response of ``GET /categories/<id>/questions``."""

    subcategory_id: str
    subcategory_name: str
    category_name: str
    questions: List[Question]
