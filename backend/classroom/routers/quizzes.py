from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from classroom.core import redis_client
from classroom.core.config import settings
from classroom.core.rate_limit import rate_limit
from classroom.core.params import parse_uuid
from classroom.core.security import get_current_user, require_roles
from classroom.db.session import get_db
from classroom.models.submission import QuizSubmission
from classroom.models.user import User, UserRole
from classroom.schemas.quiz import QuizPublic, QuizQuestionPublic, QuizSubmitRequest, QuizSubmitResponse
from classroom.services.learning import LearningService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


def _lock_key(user_id: str, quiz_id: str) -> str:
    return f"locks:quiz_submit:{user_id}:{quiz_id}"


def _submission_out(s: QuizSubmission, *, already_submitted: bool) -> QuizSubmitResponse:
    return QuizSubmitResponse(
        quiz_id=str(s.quiz_id),
        score=int(s.score),
        percentage=int(s.percentage),
        passed=bool(s.passed),
        correct=int(s.correct),
        total=int(s.total),
        already_submitted=already_submitted,
    )


@router.get("/{quiz_id}", response_model=QuizPublic)
def get_quiz(quiz_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    service = LearningService(db)
    quiz = service.get_quiz(parse_uuid(quiz_id, field="quiz_id"))
    if quiz is None:
        raise HTTPException(status_code=404, detail="quiz not found")

    questions = service.list_questions(quiz.id)
    # Answer keys never leave the server.
    return QuizPublic(
        id=str(quiz.id),
        course_id=str(quiz.course_id),
        lesson_id=str(quiz.lesson_id) if quiz.lesson_id else None,
        title=quiz.title,
        passing_score=int(quiz.passing_score),
        time_limit=quiz.time_limit,
        total_points=sum(int(q.points) for q in questions),
        questions=[
            QuizQuestionPublic(
                id=str(q.id),
                prompt=q.prompt,
                type=q.type.value,
                options=list(q.options) if q.options is not None else None,
                points=int(q.points),
            )
            for q in questions
        ],
    )


@router.post("/{quiz_id}/submit", response_model=QuizSubmitResponse)
def submit_quiz(
    quiz_id: str,
    body: QuizSubmitRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.student)),
    _: object = rate_limit(
        key_prefix="quiz_submit",
        limit=settings.quiz_submit_rate_limit,
        window_seconds=settings.rate_limit_window_seconds,
    ),
):
    qid = parse_uuid(quiz_id, field="quiz_id")
    service = LearningService(db)

    # Serialize concurrent submits of the same learner/quiz. Without Redis the
    # unique constraint on quiz_submissions still keeps a single result.
    key = _lock_key(str(user.id), str(qid))
    r = None
    acquired = False
    try:
        r = redis_client.get_redis()
        acquired = bool(r.set(key, "1", nx=True, ex=int(settings.quiz_submit_lock_seconds)))
        if not acquired:
            raise HTTPException(status_code=409, detail="submission in progress")
    except HTTPException:
        raise
    except Exception:
        r = None

    try:
        outcome = service.submit_quiz(qid, user, body.answers)
    finally:
        if r is not None and acquired:
            try:
                r.delete(key)
            except Exception:
                pass

    return _submission_out(outcome.submission, already_submitted=outcome.already_submitted)


@router.get("/{quiz_id}/submission", response_model=QuizSubmitResponse)
def get_submission(
    quiz_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.student)),
):
    qid = parse_uuid(quiz_id, field="quiz_id")
    submission = LearningService(db).get_submission(qid, user.id)
    if submission is None:
        raise HTTPException(status_code=404, detail="submission not found")
    return _submission_out(submission, already_submitted=True)
