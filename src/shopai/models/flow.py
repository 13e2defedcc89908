"""Answer-flow state models: the public view of an AnswerFlowEngine.

These models describe where a search session stands without exposing the
engine's internals, so UIs (or the CLI) can render progress and decide which
screen to show by matching on ``status``.
"""

import enum
from typing import Optional

from pydantic import BaseModel

from shopai.models.answer import AnswerSet
from shopai.models.catalog import Question
from shopai.models.search import RecommendationResponse


class FlowStatus(str, enum.Enum):
    """Lifecycle states of one search session.

    Transitions:
        idle -> loading                 (load_questions)
        loading -> active | failed
        active -> searching             (submit at the last question)
        searching -> results            (ranked payload returned)
        searching -> blocked            (LimitReached)
        searching -> failed             (any other error; submit() retries)
        failed -> searching             (retry after a failed search)
        * -> idle                       (reset)

    ``results`` and ``blocked`` are terminal until reset or a new load.
    """

    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    SEARCHING = "searching"
    RESULTS = "results"
    BLOCKED = "blocked"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({FlowStatus.RESULTS, FlowStatus.BLOCKED})


class RangeSelection(BaseModel):
    """Slider state of one range question.

    ``preset_label`` marks the quick-select preset the bounds came from;
    it is cleared as soon as either bound is adjusted by hand.
    """

    min: float
    max: float
    preset_label: Optional[str] = None


class FlowSnapshot(BaseModel):
    """Read-only snapshot of an AnswerFlowEngine."""

    status: FlowStatus
    subcategory_id: Optional[str] = None
    category_name: str = ""
    subcategory_name: str = ""
    current_index: int = 0
    question_count: int = 0
    current_question: Optional[Question] = None
    progress: float = 0.0
    can_advance: bool = False
    is_last_question: bool = False
    answers: AnswerSet = {}
    result: Optional[RecommendationResponse] = None
    error_message: Optional[str] = None
