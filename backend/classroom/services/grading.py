"""Quiz auto-grading.

Pure functions over in-memory quiz definitions. Nothing here touches the
database; `classroom.services.learning` builds the inputs and stores the result.

Answers are judged all-or-nothing per question:

- multiple choice: the submitted option index must equal the answer key after
  integer coercion ("2" and 2 are the same answer);
- free text: both sides are trimmed and lower-cased, then compared for equality.

Anything a learner can send (blank, garbage, wrong type) grades as incorrect
and never raises.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union


MULTIPLE_CHOICE = "multiple_choice"
FREE_TEXT = "free_text"


class QuizDefinitionError(ValueError):
    """Raised when a quiz definition cannot be graded."""


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    correct_option: int
    options: tuple[str, ...] = ()
    points: int = 1
    prompt: str = ""
    id: str | None = None

    type: str = field(default=MULTIPLE_CHOICE, init=False)


@dataclass(frozen=True)
class FreeTextQuestion:
    correct_answer: str
    points: int = 1
    prompt: str = ""
    id: str | None = None

    type: str = field(default=FREE_TEXT, init=False)


Question = Union[MultipleChoiceQuestion, FreeTextQuestion]
Submission = Mapping[str, Any]


@dataclass(frozen=True)
class Quiz:
    questions: tuple[Question, ...]
    passing_score: int = 70
    time_limit: int | None = None
    id: str | None = None

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)


@dataclass(frozen=True)
class GradingResult:
    score: int
    percentage: int
    passed: bool
    correct: int
    total: int


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def question_key(question: Question, position: int) -> str:
    """Key under which a submission stores the answer to `question`.

    Submissions must be built with this same function, otherwise answers
    silently fail to match.
    """
    qid = question.id
    if qid is not None and str(qid).strip():
        return str(qid)
    return str(position)


def _as_option_index(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            pass
        try:
            as_float = float(raw)
        except ValueError:
            return None
        return int(as_float) if as_float.is_integer() else None
    return None


def _normalize_text(value: Any) -> str:
    return str(value).strip().lower()


def is_correct(question: Question, answer: Any) -> bool:
    if answer is None:
        return False

    if isinstance(question, MultipleChoiceQuestion):
        got = _as_option_index(answer)
        return got is not None and got == question.correct_option

    got = _normalize_text(answer)
    if not got:
        return False
    return got == _normalize_text(question.correct_answer)


def grade(quiz: Quiz, submission: Submission) -> GradingResult:
    answers = submission or {}

    score = 0
    correct = 0
    for position, question in enumerate(quiz.questions):
        if is_correct(question, answers.get(question_key(question, position))):
            score += question.points
            correct += 1

    total_points = quiz.total_points
    if total_points > 0:
        percentage = round_half_up(Decimal(score) * 100 / Decimal(total_points))
    else:
        percentage = 0

    return GradingResult(
        score=score,
        percentage=percentage,
        passed=percentage >= quiz.passing_score,
        correct=correct,
        total=len(quiz.questions),
    )


def _positive_points(raw: Any, *, key: str) -> int:
    points = _as_option_index(1 if raw is None else raw)
    if points is None or points <= 0:
        raise QuizDefinitionError(f"question {key}: points must be a positive integer")
    return points


def build_question(record: Mapping[str, Any], position: int) -> Question:
    """Build a typed question from a raw record (API payload or stored row).

    Multiple-choice keys given as numerals ("2") are parsed to integers;
    free-text keys given as numbers are kept as their string form.
    """
    qtype = str(record.get("type") or "").strip().lower().replace("-", "_")
    raw_id = record.get("id")
    qid = str(raw_id) if raw_id is not None and str(raw_id).strip() else None
    key = qid or str(position)
    prompt = str(record.get("prompt") or "")
    points = _positive_points(record.get("points"), key=key)

    if qtype == MULTIPLE_CHOICE:
        options = tuple(str(o) for o in (record.get("options") or []))
        correct_option = _as_option_index(record.get("correct_answer"))
        if correct_option is None:
            raise QuizDefinitionError(f"question {key}: correct answer must be an option index")
        if options and not 0 <= correct_option < len(options):
            raise QuizDefinitionError(f"question {key}: correct answer is not one of the options")
        return MultipleChoiceQuestion(
            correct_option=correct_option,
            options=options,
            points=points,
            prompt=prompt,
            id=qid,
        )

    if qtype == FREE_TEXT:
        raw_answer = record.get("correct_answer")
        if raw_answer is None or not str(raw_answer).strip():
            raise QuizDefinitionError(f"question {key}: free-text answer key is empty")
        return FreeTextQuestion(correct_answer=str(raw_answer), points=points, prompt=prompt, id=qid)

    raise QuizDefinitionError(f"question {key}: unknown question type {record.get('type')!r}")


def build_quiz(
    questions: Sequence[Mapping[str, Any]],
    *,
    passing_score: int = 70,
    time_limit: int | None = None,
    quiz_id: str | None = None,
) -> Quiz:
    if not 0 <= int(passing_score) <= 100:
        raise QuizDefinitionError("passing score must be between 0 and 100")

    built = tuple(build_question(record, position) for position, record in enumerate(questions))

    keys = [question_key(q, i) for i, q in enumerate(built)]
    if len(set(keys)) != len(keys):
        raise QuizDefinitionError("question identifiers must be unique within a quiz")

    return Quiz(questions=built, passing_score=int(passing_score), time_limit=time_limit, id=quiz_id)
