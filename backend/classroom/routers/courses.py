from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from classroom.core.config import settings
from classroom.core.params import parse_uuid
from classroom.core.security import ensure_course_owner, get_current_user, require_roles
from classroom.db.session import get_db
from classroom.models.course import Course, Lesson
from classroom.models.user import User, UserRole
from classroom.schemas.course import CourseCreate, CourseOut, CourseUpdate, LessonCreate, LessonOut
from classroom.schemas.progress import EnrollmentOut
from classroom.schemas.quiz import QuizCreate
from classroom.services.learning import LearningService

router = APIRouter(prefix="/courses", tags=["courses"])


def _course_out(c: Course) -> CourseOut:
    return CourseOut(
        id=str(c.id),
        title=c.title,
        description=c.description or "",
        teacher_id=str(c.teacher_id),
        is_active=bool(c.is_active),
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


def lesson_out(lesson: Lesson) -> LessonOut:
    return LessonOut(
        id=str(lesson.id),
        course_id=str(lesson.course_id),
        title=lesson.title,
        description=lesson.description or "",
        content=lesson.content or "",
        order=int(lesson.order),
    )


def _load_course(service: LearningService, course_id: str) -> Course:
    course = service.get_course(parse_uuid(course_id, field="course_id"))
    if course is None:
        raise HTTPException(status_code=404, detail="course not found")
    return course


@router.get("", response_model=list[CourseOut])
def list_courses(mine: bool = False, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    service = LearningService(db)
    teacher_id = user.id if mine and user.role in (UserRole.teacher, UserRole.admin) else None
    return [_course_out(c) for c in service.list_courses(teacher_id=teacher_id)]


@router.post("", response_model=CourseOut)
def create_course(
    body: CourseCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    course = LearningService(db).create_course(
        teacher=user, title=body.title, description=body.description, is_active=body.is_active
    )
    return _course_out(course)


@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    course = _load_course(LearningService(db), course_id)
    if not course.is_active and user.role != UserRole.admin and course.teacher_id != user.id:
        raise HTTPException(status_code=404, detail="course not found")
    return _course_out(course)


@router.patch("/{course_id}", response_model=CourseOut)
def update_course(
    course_id: str,
    body: CourseUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    course = _load_course(service, course_id)
    ensure_course_owner(course, user)
    return _course_out(service.update_course(course, body.model_dump(exclude_unset=True)))


@router.delete("/{course_id}")
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    course = _load_course(service, course_id)
    ensure_course_owner(course, user)
    service.delete_course(course)
    return {"ok": True}


@router.get("/{course_id}/lessons", response_model=list[LessonOut])
def list_lessons(course_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    service = LearningService(db)
    course = _load_course(service, course_id)
    return [lesson_out(lesson) for lesson in service.list_lessons(course.id)]


@router.post("/{course_id}/lessons", response_model=LessonOut)
def create_lesson(
    course_id: str,
    body: LessonCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    course = _load_course(service, course_id)
    ensure_course_owner(course, user)
    lesson = service.create_lesson(
        course,
        title=body.title,
        description=body.description,
        content=body.content,
        order=body.order,
    )
    return lesson_out(lesson)


@router.post("/{course_id}/quizzes")
def create_quiz(
    course_id: str,
    body: QuizCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    course = _load_course(service, course_id)
    ensure_course_owner(course, user)

    lesson_id = parse_uuid(body.lesson_id, field="lesson_id") if body.lesson_id else None
    quiz = service.create_quiz(
        course,
        title=body.title,
        questions=[q.model_dump() for q in body.questions],
        passing_score=body.passing_score,
        time_limit=body.time_limit,
        lesson_id=lesson_id,
        default_passing_score=int(settings.default_passing_score),
    )
    return {"ok": True, "quiz_id": str(quiz.id)}


@router.get("/{course_id}/enrollments", response_model=list[EnrollmentOut])
def list_course_enrollments(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    service = LearningService(db)
    course = _load_course(service, course_id)
    ensure_course_owner(course, user)
    return [
        EnrollmentOut(
            id=str(e.id),
            course_id=str(e.course_id),
            student_id=str(e.student_id),
            student_name=u.name,
            enrolled_at=e.enrolled_at,
            progress=int(e.progress or 0),
            grade=e.grade,
        )
        for e, u in service.list_enrollments_for_course(course.id)
    ]
