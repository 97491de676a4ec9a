from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from classroom.core.config import settings
from classroom.core.params import parse_uuid
from classroom.core.rate_limit import rate_limit
from classroom.core.security import ensure_course_owner, require_roles
from classroom.db.session import get_db
from classroom.models.course import Lesson
from classroom.models.user import User, UserRole
from classroom.routers.courses import lesson_out
from classroom.schemas.course import LessonOut, LessonUpdate
from classroom.schemas.progress import CourseProgressResponse
from classroom.services.learning import LearningService

router = APIRouter(prefix="/lessons", tags=["lessons"])


def _load_owned_lesson(service: LearningService, lesson_id: str, user: User) -> Lesson:
    lesson = service.get_lesson(parse_uuid(lesson_id, field="lesson_id"))
    if lesson is None:
        raise HTTPException(status_code=404, detail="lesson not found")
    course = service.get_course(lesson.course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="course not found")
    ensure_course_owner(course, user)
    return lesson


@router.patch("/{lesson_id}", response_model=LessonOut)
def update_lesson(
    lesson_id: str,
    body: LessonUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    lesson = _load_owned_lesson(service, lesson_id, user)
    return lesson_out(service.update_lesson(lesson, body.model_dump(exclude_unset=True)))


@router.delete("/{lesson_id}")
def delete_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    lesson = _load_owned_lesson(service, lesson_id, user)
    service.delete_lesson(lesson)
    return {"ok": True}


@router.post("/{lesson_id}/complete", response_model=CourseProgressResponse)
def complete_lesson(
    lesson_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.student)),
    _: object = rate_limit(
        key_prefix="lesson_complete",
        limit=settings.lesson_complete_rate_limit,
        window_seconds=settings.rate_limit_window_seconds,
    ),
):
    service = LearningService(db)
    enrollment = service.complete_lesson(parse_uuid(lesson_id, field="lesson_id"), user)
    lessons = service.list_lessons(enrollment.course_id)

    return CourseProgressResponse(
        course_id=str(enrollment.course_id),
        total_lessons=len(lessons),
        completed_lessons=service.count_completed_lessons(enrollment.course_id, user.id),
        progress=int(enrollment.progress or 0),
        grade=enrollment.grade,
    )
