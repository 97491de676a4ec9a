from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EnrollRequest(BaseModel):
    course_id: str


class EnrollmentOut(BaseModel):
    id: str
    course_id: str
    student_id: str
    student_name: str | None = None
    enrolled_at: datetime
    progress: int
    grade: float | None = None


class GradeUpdate(BaseModel):
    grade: float


class CourseProgressResponse(BaseModel):
    course_id: str
    total_lessons: int
    completed_lessons: int
    progress: int
    grade: float | None = None
