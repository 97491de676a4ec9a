from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from classroom.core.params import parse_uuid
from classroom.core.security import require_roles
from classroom.db.session import get_db
from classroom.models.user import User, UserRole
from classroom.schemas.progress import CourseProgressResponse
from classroom.services.learning import LearningService

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/courses/{course_id}", response_model=CourseProgressResponse)
def course_progress(
    course_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.student)),
):
    cid = parse_uuid(course_id, field="course_id")
    service = LearningService(db)
    enrollment = service.get_enrollment(cid, user.id)
    if enrollment is None:
        raise HTTPException(status_code=404, detail="enrollment not found")

    return CourseProgressResponse(
        course_id=str(cid),
        total_lessons=len(service.list_lessons(cid)),
        completed_lessons=service.count_completed_lessons(cid, user.id),
        progress=int(enrollment.progress or 0),
        grade=enrollment.grade,
    )
