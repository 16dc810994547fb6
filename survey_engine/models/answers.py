"""Answer value variants.

A response value is a tagged union keyed by the question's type: every type
except multiple-choice holds a single string (`ScalarAnswer`), multiple-choice
holds a list of option ids (`MultiChoiceAnswer`). Use
`survey_engine.logic.answers.parse_answer` to build one from a raw payload.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Union

from pydantic import BaseModel, Field


class ScalarAnswer(BaseModel):
    kind: Literal["scalar"] = "scalar"
    value: str = ""

    @property
    def is_well_formed(self) -> bool:
        return bool(self.value.strip())

    def selected(self) -> List[str]:
        return [self.value] if self.is_well_formed else []

    def to_record(self) -> dict:
        return {"value": self.value}


class MultiChoiceAnswer(BaseModel):
    kind: Literal["multi"] = "multi"
    values: List[str] = Field(default_factory=list)

    @property
    def is_well_formed(self) -> bool:
        return len(self.values) > 0

    def selected(self) -> List[str]:
        return list(self.values)

    def to_record(self) -> dict:
        return {"values": list(self.values)}


AnswerValue = Union[ScalarAnswer, MultiChoiceAnswer]
# question_id -> parsed answer
AnswerMap = Dict[str, AnswerValue]


__all__ = ["ScalarAnswer", "MultiChoiceAnswer", "AnswerValue", "AnswerMap"]
