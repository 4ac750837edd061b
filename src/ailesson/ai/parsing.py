"""Extraction and validation of structured model output."""

from __future__ import annotations

import json
import re
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class TextGenerationError(Exception):
    """A provider call failed or its output could not be used."""


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------

DIFFICULTIES = ("BEGINNER", "INTERMEDIATE", "ADVANCED")
APPEARANCES = ("avatar1", "avatar2", "avatar3", "avatar4", "avatar5")
QUESTION_TYPES = ("TEXT", "SINGLE", "MULTIPLE")
MIN_QUIZ_QUESTIONS = 5
MAX_QUIZ_QUESTIONS = 10


class LessonDraft(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    difficulty: str = "INTERMEDIATE"

    model_config = {"populate_by_name": True}

    @field_validator("key_points", mode="before")
    @classmethod
    def _key_points_list(cls, v: Any) -> Any:  # noqa: ANN401
        return v if isinstance(v, list) else []

    @field_validator("difficulty", mode="before")
    @classmethod
    def _known_difficulty(cls, v: Any) -> str:  # noqa: ANN401
        return v if v in DIFFICULTIES else "INTERMEDIATE"


class QuestionDraft(BaseModel):
    type: Literal["TEXT", "SINGLE", "MULTIPLE"]
    text: str = Field(min_length=1)
    correct_answer: str | list[str] = Field(alias="correctAnswer")
    options: list[str] | None = None
    order: int | None = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _answer_matches_type(self) -> QuestionDraft:
        if self.type == "TEXT":
            if not isinstance(self.correct_answer, str):
                msg = "TEXT question must have a string answer"
                raise ValueError(msg)
            return self

        if not self.options or len(self.options) < 2:
            msg = f"{self.type} question must have at least 2 options"
            raise ValueError(msg)
        if self.type == "SINGLE" and self.correct_answer not in self.options:
            msg = "SINGLE answer must be one of the options"
            raise ValueError(msg)
        if self.type == "MULTIPLE":
            if not isinstance(self.correct_answer, list):
                msg = "MULTIPLE answer must be a list of options"
                raise ValueError(msg)
            if not all(a in self.options for a in self.correct_answer):
                msg = "every MULTIPLE answer must be one of the options"
                raise ValueError(msg)
        return self


class QuizDraft(BaseModel):
    questions: list[QuestionDraft] = Field(min_length=MIN_QUIZ_QUESTIONS, max_length=MAX_QUIZ_QUESTIONS)

    @model_validator(mode="after")
    def _number_questions(self) -> QuizDraft:
        for index, question in enumerate(self.questions, start=1):
            if question.order is None:
                question.order = index
        return self


class ExpertDraft(BaseModel):
    name: str = Field(min_length=1)
    personality: str = Field(min_length=1)
    communication_style: str = Field(min_length=1, alias="communicationStyle")
    appearance: str = "avatar1"

    model_config = {"populate_by_name": True}

    @field_validator("appearance", mode="before")
    @classmethod
    def _known_appearance(cls, v: Any) -> str:  # noqa: ANN401
        return v if v in APPEARANCES else "avatar1"


DEFAULT_EXPERT = ExpertDraft(
    name="Professor Knowall",
    personality=(
        "A friendly, patient mentor who is always ready to help. Has deep knowledge "
        "and explains complex ideas in simple words."
    ),
    communication_style=(
        "Uses clear examples and analogies. Encourages questions and keeps the "
        "conversation relaxed."
    ),
    appearance="avatar1",
)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

DraftT = TypeVar("DraftT", bound=BaseModel)


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull the JSON object out of a model reply.

    Markdown code fences are dropped, then the outermost ``{...}`` span is
    parsed.
    """
    cleaned = _FENCE_RE.sub("", text.strip())
    match = _OBJECT_RE.search(cleaned)
    if match is None:
        msg = "No JSON object in model output"
        raise TextGenerationError(msg)
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in model output: {e}"
        raise TextGenerationError(msg) from e
    if not isinstance(data, dict):
        msg = "Model output is not a JSON object"
        raise TextGenerationError(msg)
    return data


def parse_draft(text: str, model: type[DraftT]) -> DraftT:
    """Extract and validate one draft from raw model output."""
    data = extract_json_object(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        msg = f"Generated {model.__name__} failed validation: {e.error_count()} error(s)"
        raise TextGenerationError(msg) from e
