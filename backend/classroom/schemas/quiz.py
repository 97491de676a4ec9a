from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class MultipleChoiceQuestionIn(BaseModel):
    type: Literal["multiple_choice"]
    prompt: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_answer: int | str
    points: int = Field(default=1, gt=0)


class FreeTextQuestionIn(BaseModel):
    type: Literal["free_text"]
    prompt: str = Field(min_length=1)
    correct_answer: str | int | float
    points: int = Field(default=1, gt=0)


QuestionIn = Annotated[Union[MultipleChoiceQuestionIn, FreeTextQuestionIn], Field(discriminator="type")]


class QuizCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    lesson_id: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    time_limit: int | None = Field(default=None, gt=0)
    questions: list[QuestionIn] = Field(min_length=1)


class QuizQuestionPublic(BaseModel):
    id: str
    prompt: str
    type: str
    options: list[str] | None = None
    points: int


class QuizPublic(BaseModel):
    id: str
    course_id: str
    lesson_id: str | None
    title: str
    passing_score: int
    time_limit: int | None
    total_points: int
    questions: list[QuizQuestionPublic]


class QuizSubmitRequest(BaseModel):
    # question id -> selected option index or typed text
    answers: dict[str, int | float | str | None] = Field(default_factory=dict)


class QuizSubmitResponse(BaseModel):
    quiz_id: str
    score: int
    percentage: int
    passed: bool
    correct: int
    total: int
    already_submitted: bool = False
