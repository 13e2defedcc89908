"""AnswerFlowEngine: drives the question flow of one product search.

The engine walks a strictly linear question list for one subcategory,
records one answer per question and gates submission behind completeness.

State machine (see :class:`~shopai.models.flow.FlowStatus`)::

    idle ──load_questions──► loading ──► active ──submit──► searching ──► results
                                 │                             │
                                 └──► failed ◄─────────────────┼──► blocked
                                        │    (retry submit)    │
                                        └──────────────────────┘

Answer policy:
  - ``set_answer`` upserts; the value shape must match the question kind
  - multi-select answers hold at most 3 values; ``toggle_choice`` removes a
    present value and silently ignores a new value at capacity
  - range answers always satisfy min <= max; moving one bound past the other
    drags the other along, and the first preset seeds the range on first
    display

Navigation never wraps: ``next()`` stops at the last question and
``previous()`` at the first.  ``can_advance`` is false only while the current
question is required and unanswered.

The engine is not thread-safe.  Mutations are expected from one logical
control thread; ``load_questions`` and ``submit`` await the network and
discard their response if the flow was reset or reloaded in the meantime.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from shopai.client import APIClient
from shopai.errors import AnswerShapeError, APIServiceError, LimitReached
from shopai.models.answer import (
    AnswerKind,
    AnswerValue,
    ChoicesAnswer,
    RangeAnswer,
    SearchAnswer,
    TextAnswer,
    answer_from_wire,
)
from shopai.models.catalog import Question, QuestionType, RangeConfig
from shopai.models.flow import (
    TERMINAL_STATUSES,
    FlowSnapshot,
    FlowStatus,
    RangeSelection,
)
from shopai.models.search import RecommendationResponse

logger = logging.getLogger(__name__)

_ANSWER_TYPES = (TextAnswer, ChoicesAnswer, RangeAnswer)

# States in which answers may be edited and the index moved.
_EDITABLE_STATUSES = frozenset({FlowStatus.ACTIVE, FlowStatus.FAILED})


def _snap(value: float, config: RangeConfig) -> float:
    """Clamp ``value`` to the slider bounds and snap it onto the step grid."""
    clamped = min(max(value, config.min), config.max)
    steps = round((clamped - config.min) / config.step)
    return min(config.min + steps * config.step, config.max)


class AnswerFlowEngine:
    """Collects answers for one subcategory and submits them for ranking.

    Args:
        client: the :class:`APIClient` used to fetch questions and search
    """

    def __init__(self, client: APIClient) -> None:
        self._client = client
        # Bumped on every clear so in-flight responses can detect staleness
        self._generation = 0
        self._clear()
        self._status = FlowStatus.IDLE

    def _clear(self) -> None:
        self._generation += 1
        self._subcategory_id: str | None = None
        self._category_name = ""
        self._subcategory_name = ""
        self._questions: list[Question] = []
        self._index = 0
        self._answers: dict[str, AnswerValue] = {}
        self._ranges: dict[str, RangeSelection] = {}
        self._result: RecommendationResponse | None = None
        self._last_error: APIServiceError | None = None

    # ==================================================================
    # Loading
    # ==================================================================

    async def load_questions(
        self, subcategory_id: str, currency: str | None = None
    ) -> FlowSnapshot:
        """Start a new session for ``subcategory_id``.

        Clears index, answers, range selections and any prior result, then
        fetches the question list.  Ends ``active`` at index 0, or ``failed``
        with :attr:`last_error` set.  Calling it again is the retry path for
        a failed load.
        """
        self._clear()
        generation = self._generation
        self._subcategory_id = subcategory_id
        self._status = FlowStatus.LOADING

        try:
            question_set = await self._client.get_questions(subcategory_id, currency)
        except APIServiceError as exc:
            if generation == self._generation:
                logger.warning(
                    "Loading questions for %s failed: %s", subcategory_id, exc,
                )
                self._fail(exc)
            return self.snapshot()

        if generation != self._generation:
            logger.debug("Discarding stale question list for %s", subcategory_id)
            return self.snapshot()

        self._questions = list(question_set.questions)
        self._category_name = question_set.category_name
        self._subcategory_name = question_set.subcategory_name
        self._status = FlowStatus.ACTIVE
        logger.info(
            "Loaded %d questions for %s", len(self._questions), subcategory_id,
        )
        return self.snapshot()

    def reset(self) -> None:
        """Discard the session and return to ``idle``."""
        self._clear()
        self._status = FlowStatus.IDLE

    # ==================================================================
    # Read-only state
    # ==================================================================

    @property
    def status(self) -> FlowStatus:
        return self._status

    @property
    def subcategory_id(self) -> str | None:
        return self._subcategory_id

    @property
    def category_name(self) -> str:
        return self._category_name

    @property
    def subcategory_name(self) -> str:
        return self._subcategory_name

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_question(self) -> Question | None:
        if self._index < len(self._questions):
            return self._questions[self._index]
        return None

    @property
    def progress(self) -> float:
        """Fraction of questions already passed (0.0 on the first one)."""
        if not self._questions:
            return 0.0
        return self._index / len(self._questions)

    @property
    def is_last_question(self) -> bool:
        return self._index >= len(self._questions) - 1

    @property
    def can_advance(self) -> bool:
        question = self.current_question
        if question is None:
            return False
        if not question.required:
            return True
        return question.id in self._answers

    @property
    def missing_required(self) -> list[str]:
        """Ids of required questions that have no answer yet, in flow order."""
        return [
            q.id for q in self._questions
            if q.required and q.id not in self._answers
        ]

    @property
    def answers(self) -> dict[str, AnswerValue]:
        return dict(self._answers)

    @property
    def result(self) -> RecommendationResponse | None:
        return self._result

    @property
    def last_error(self) -> APIServiceError | None:
        return self._last_error

    @property
    def error_message(self) -> str | None:
        return str(self._last_error) if self._last_error is not None else None

    def snapshot(self) -> FlowSnapshot:
        return FlowSnapshot(
            status=self._status,
            subcategory_id=self._subcategory_id,
            category_name=self._category_name,
            subcategory_name=self._subcategory_name,
            current_index=self._index,
            question_count=len(self._questions),
            current_question=self.current_question,
            progress=self.progress,
            can_advance=self.can_advance,
            is_last_question=self.is_last_question,
            answers=dict(self._answers),
            result=self._result,
            error_message=self.error_message,
        )

    # ==================================================================
    # Navigation
    # ==================================================================

    def next(self) -> int:
        """Move to the next question; no-op at the last one.  Returns the index."""
        self._require_editable("move forward")
        if self._index < len(self._questions) - 1:
            self._index += 1
        return self._index

    def previous(self) -> int:
        """Move to the previous question; no-op at the first one.  Returns the index."""
        self._require_editable("move back")
        if self._index > 0:
            self._index -= 1
        return self._index

    # ==================================================================
    # Answers
    # ==================================================================

    def set_answer(self, question_id: str, value: AnswerValue | Any) -> AnswerValue:
        """Record (or replace) the answer for ``question_id``.

        ``value`` is either an answer model or its bare wire form (a string,
        a list of strings, or ``{"min": x, "max": y}``).  An empty
        multi-select clears the answer, the same as toggling off the last
        choice.

        Raises:
            AnswerShapeError: unknown question, or value shape does not
                match the question kind
            ValueError: the flow is not accepting answers
        """
        self._require_editable("set answer")
        question = self._get_question(question_id)
        answer = self._coerce(question, value)
        if isinstance(answer, ChoicesAnswer) and not answer.values:
            self._answers.pop(question_id, None)
            return answer
        self._answers[question_id] = answer
        if isinstance(answer, RangeAnswer):
            self._ranges[question_id] = RangeSelection(min=answer.min, max=answer.max)
        return answer

    def get_answer(self, question_id: str) -> AnswerValue | None:
        return self._answers.get(question_id)

    def get_text_answer(self, question_id: str) -> str | None:
        answer = self._answers.get(question_id)
        return answer.value if isinstance(answer, TextAnswer) else None

    def get_choices_answer(self, question_id: str) -> list[str]:
        answer = self._answers.get(question_id)
        return list(answer.values) if isinstance(answer, ChoicesAnswer) else []

    def get_range_answer(self, question_id: str) -> tuple[float, float] | None:
        answer = self._answers.get(question_id)
        if isinstance(answer, RangeAnswer):
            return (answer.min, answer.max)
        return None

    def toggle_choice(self, question_id: str, value: str) -> list[str]:
        """Toggle ``value`` in a multi-select answer; returns the selection.

        Selecting an already-selected value removes it.  A new value is
        ignored once 3 are selected.  Clearing the last value removes the
        answer entirely so a required question blocks again.
        """
        self._require_editable("toggle choice")
        question = self._get_question(question_id)
        if question.answer_kind != AnswerKind.CHOICES:
            raise AnswerShapeError(
                f"Question '{question_id}' ({question.type.value}) is not multi-select"
            )

        current = self._answers.get(question_id)
        if not isinstance(current, ChoicesAnswer):
            current = ChoicesAnswer()
        toggled = current.toggled(value)

        if toggled.values:
            self._answers[question_id] = toggled
        else:
            self._answers.pop(question_id, None)
        return list(toggled.values)

    # --- Range questions ---

    def present_range(self, question_id: str) -> RangeSelection:
        """Return the slider state for a range question, seeding it on first display.

        First display with presets selects the first preset and records it
        as the answer.  Without presets the slider starts at the config min
        and half the config max, and nothing is recorded until the user
        moves it.
        """
        self._require_editable("present range")
        question, config = self._get_range_question(question_id)

        existing = self._ranges.get(question_id)
        if existing is not None:
            return existing

        if config.presets:
            return self._apply_preset(question, config, config.presets[0].label)

        selection = RangeSelection(min=config.min, max=max(config.min, config.max / 2))
        self._ranges[question_id] = selection
        return selection

    def select_preset(self, question_id: str, label: str) -> RangeSelection:
        """Apply the preset named ``label`` and mark it as selected."""
        self._require_editable("select preset")
        question, config = self._get_range_question(question_id)
        return self._apply_preset(question, config, label)

    def adjust_range_min(self, question_id: str, value: float) -> RangeSelection:
        """Move the lower bound; drags the upper bound up if it is passed."""
        self._require_editable("adjust range")
        question, config = self._get_range_question(question_id)
        current = self.present_range(question_id)
        new_min = _snap(value, config)
        return self._record_range(question, new_min, max(current.max, new_min))

    def adjust_range_max(self, question_id: str, value: float) -> RangeSelection:
        """Move the upper bound; drags the lower bound down if it is passed."""
        self._require_editable("adjust range")
        question, config = self._get_range_question(question_id)
        current = self.present_range(question_id)
        new_max = _snap(value, config)
        return self._record_range(question, min(current.min, new_max), new_max)

    def get_range_selection(self, question_id: str) -> RangeSelection | None:
        return self._ranges.get(question_id)

    # ==================================================================
    # Submission
    # ==================================================================

    async def submit(self) -> FlowSnapshot:
        """Send the collected answers for ranking.

        Only legal at the last question of a loaded flow, from ``active`` or
        ``failed``, with every required question answered.  Ends in
        ``results``, ``blocked`` (free limit reached) or ``failed``; a failed
        submit keeps the answers and position, so calling ``submit()`` again
        is the retry.

        Raises:
            ValueError: submission is not legal in the current state
        """
        if self._status not in _EDITABLE_STATUSES or not self._questions:
            raise ValueError(
                f"Cannot submit: flow status is '{self._status.value}', "
                f"expected 'active' or 'failed' with questions loaded"
            )
        if not self.is_last_question:
            raise ValueError(
                f"Cannot submit: at question {self._index + 1} of "
                f"{len(self._questions)}, not the last"
            )
        missing = self.missing_required
        if missing:
            raise ValueError(
                f"Cannot submit: required questions unanswered: {', '.join(missing)}"
            )

        generation = self._generation
        subcategory_id = self._subcategory_id
        # Flow order keeps the request deterministic
        payload = [
            SearchAnswer(question_id=q.id, value=self._answers[q.id])
            for q in self._questions
            if q.id in self._answers
        ]
        self._status = FlowStatus.SEARCHING
        self._last_error = None

        try:
            result = await self._client.search(subcategory_id, payload)
        except LimitReached as exc:
            if generation == self._generation:
                logger.info("Search for %s blocked: free limit reached", subcategory_id)
                self._last_error = exc
                self._status = FlowStatus.BLOCKED
            return self.snapshot()
        except APIServiceError as exc:
            if generation == self._generation:
                logger.warning("Search for %s failed: %s", subcategory_id, exc)
                self._fail(exc)
            return self.snapshot()

        if generation != self._generation:
            logger.debug("Discarding stale search result for %s", subcategory_id)
            return self.snapshot()

        self._result = result
        self._status = FlowStatus.RESULTS
        logger.info(
            "Search %s returned %d products", result.search_id, len(result.products),
        )
        return self.snapshot()

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _fail(self, exc: APIServiceError) -> None:
        self._last_error = exc
        self._status = FlowStatus.FAILED

    def _require_editable(self, action: str) -> None:
        if self._status not in _EDITABLE_STATUSES:
            terminal = " (terminal)" if self._status in TERMINAL_STATUSES else ""
            raise ValueError(
                f"Cannot {action}: flow status is '{self._status.value}'{terminal}"
            )

    def _get_question(self, question_id: str) -> Question:
        for question in self._questions:
            if question.id == question_id:
                return question
        raise AnswerShapeError(f"Unknown question '{question_id}'")

    def _get_range_question(self, question_id: str) -> tuple[Question, RangeConfig]:
        question = self._get_question(question_id)
        if question.type != QuestionType.RANGE:
            raise AnswerShapeError(
                f"Question '{question_id}' ({question.type.value}) is not a range question"
            )
        if question.range_config is None:
            raise AnswerShapeError(f"Question '{question_id}' has no range configuration")
        return question, question.range_config

    def _coerce(self, question: Question, value: Any) -> AnswerValue:
        """Validate ``value`` against the question kind, parsing wire forms."""
        if not isinstance(value, _ANSWER_TYPES):
            try:
                value = answer_from_wire(value)
            except ValueError as exc:
                # pydantic's ValidationError is a ValueError too
                raise AnswerShapeError(
                    f"Invalid answer for '{question.id}': {exc}"
                ) from exc
        if value.kind != question.answer_kind.value:
            raise AnswerShapeError(
                f"Question '{question.id}' ({question.type.value}) expects a "
                f"{question.answer_kind.value} answer, got {value.kind}"
            )
        return value

    def _apply_preset(
        self, question: Question, config: RangeConfig, label: str
    ) -> RangeSelection:
        for preset in config.presets:
            if preset.label == label:
                break
        else:
            raise ValueError(f"Unknown preset '{label}' for question '{question.id}'")

        try:
            answer = RangeAnswer(min=preset.min, max=preset.max)
        except ValidationError as exc:
            raise AnswerShapeError(
                f"Preset '{label}' for '{question.id}' is not a valid range"
            ) from exc
        selection = RangeSelection(min=preset.min, max=preset.max, preset_label=label)
        self._ranges[question.id] = selection
        self._answers[question.id] = answer
        return selection

    def _record_range(
        self, question: Question, new_min: float, new_max: float
    ) -> RangeSelection:
        # Manual adjustment clears the preset marker
        selection = RangeSelection(min=new_min, max=new_max)
        self._ranges[question.id] = selection
        self._answers[question.id] = RangeAnswer(min=new_min, max=new_max)
        return selection
