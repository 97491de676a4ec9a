from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from classroom.core.params import parse_uuid
from classroom.core.security import ensure_course_owner, require_roles
from classroom.db.session import get_db
from classroom.models.course import Course
from classroom.models.enrollment import Enrollment
from classroom.models.user import User, UserRole
from classroom.schemas.progress import EnrollmentOut, EnrollRequest, GradeUpdate
from classroom.services.learning import LearningService

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


def _enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        id=str(e.id),
        course_id=str(e.course_id),
        student_id=str(e.student_id),
        enrolled_at=e.enrolled_at,
        progress=int(e.progress or 0),
        grade=e.grade,
    )


@router.post("", response_model=EnrollmentOut)
def enroll(
    body: EnrollRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.student)),
):
    cid = parse_uuid(body.course_id, field="course_id")
    enrollment = LearningService(db).enroll(cid, user)
    out = _enrollment_out(enrollment)
    out.student_name = user.name
    return out


@router.get("/me", response_model=list[EnrollmentOut])
def my_enrollments(db: Session = Depends(get_db), user: User = Depends(require_roles(UserRole.student))):
    return [_enrollment_out(e) for e in LearningService(db).list_enrollments_for_student(user.id)]


@router.put("/{enrollment_id}/grade", response_model=EnrollmentOut)
def set_grade(
    enrollment_id: str,
    body: GradeUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.teacher)),
):
    eid = parse_uuid(enrollment_id, field="enrollment_id")
    enrollment = db.scalar(select(Enrollment).where(Enrollment.id == eid))
    if enrollment is None:
        raise HTTPException(status_code=404, detail="enrollment not found")

    course = db.scalar(select(Course).where(Course.id == enrollment.course_id))
    if course is not None:
        ensure_course_owner(course, user)

    return _enrollment_out(LearningService(db).set_grade(eid, body.grade))
