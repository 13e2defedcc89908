"""Answer value models: the three shapes a question answer can take.

``AnswerValue`` is a discriminated union on ``kind``:

  - TextAnswer:     a single string token (single/brand select, free text)
  - ChoicesAnswer:  up to 3 string tokens (multi select)
  - RangeAnswer:    a numeric (min, max) pair with min <= max (range)

On the wire the backend expects the *untagged* value: a bare string, a list
of strings, or ``{"min": x, "max": y}``.  :func:`answer_to_wire` and
:func:`answer_from_wire` convert between the two representations;
``SearchAnswer`` applies them automatically.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from shopai.constants import MAX_MULTI_SELECT
from shopai.models.base import APIModel


class AnswerKind(str, enum.Enum):
    TEXT = "text"
    CHOICES = "choices"
    RANGE = "range"


class TextAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class ChoicesAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["choices"] = "choices"
    values: List[str] = Field(default_factory=list, max_length=MAX_MULTI_SELECT)

    @model_validator(mode="after")
    def _chk(self):
        if len(set(self.values)) != len(self.values):
            raise ValueError("choices must not repeat a value")
        return self

    def toggled(self, value: str) -> ChoicesAnswer:
        """Return the selection after toggling ``value``.

        A present value is removed.  An absent value is appended only while
        below capacity; at capacity the selection comes back unchanged.
        """
        if value in self.values:
            return ChoicesAnswer(values=[v for v in self.values if v != value])
        if len(self.values) >= MAX_MULTI_SELECT:
            return self
        return ChoicesAnswer(values=[*self.values, value])


class RangeAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["range"] = "range"
    min: float
    max: float

    @model_validator(mode="after")
    def _chk(self):
        if self.min > self.max:
            raise ValueError("range min must be <= max")
        return self


# Discriminated union: pydantic picks the right type based on "kind".
AnswerValue = Annotated[
    Union[TextAnswer, ChoicesAnswer, RangeAnswer],
    Field(discriminator="kind"),
]

# Accumulated answers for one search session, keyed by question id.
AnswerSet = dict[str, AnswerValue]


def answer_to_wire(answer: AnswerValue) -> str | list[str] | dict[str, float]:
    """Strip the tag: the backend expects the bare value."""
    if isinstance(answer, TextAnswer):
        return answer.value
    elif isinstance(answer, ChoicesAnswer):
        return list(answer.values)
    elif isinstance(answer, RangeAnswer):
        return {"min": answer.min, "max": answer.max}
    raise TypeError(f"Unknown answer type: {type(answer).__name__}")


def answer_from_wire(raw: Any) -> AnswerValue:
    """Rebuild a tagged answer from its untagged wire form.

    Tries string, then list of strings, then ``{min, max}``, the same order
    the backend documents for ``SearchAnswer.value``.
    """
    if isinstance(raw, str):
        return TextAnswer(value=raw)
    if isinstance(raw, list) and all(isinstance(v, str) for v in raw):
        return ChoicesAnswer(values=raw)
    if isinstance(raw, dict) and "min" in raw and "max" in raw:
        return RangeAnswer(min=raw["min"], max=raw["max"])
    raise ValueError(f"Unrecognised answer value: {raw!r}")


class SearchAnswer(APIModel):
    """One ``(questionId, value)`` pair of a search request."""

    question_id: str
    value: AnswerValue

    @field_validator("value", mode="before")
    @classmethod
    def _from_wire(cls, raw: Any) -> Any:
        # Tagged dicts and model instances go through normal validation
        if isinstance(raw, BaseModel) or (isinstance(raw, dict) and "kind" in raw):
            return raw
        return answer_from_wire(raw)

    @field_serializer("value")
    def _to_wire(self, value: AnswerValue) -> Any:
        return answer_to_wire(value)
