from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    is_active: bool = True


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    is_active: bool | None = None


class CourseOut(BaseModel):
    id: str
    title: str
    description: str
    teacher_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class LessonCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    content: str = ""
    order: int | None = Field(default=None, ge=1)


class LessonOut(BaseModel):
    id: str
    course_id: str
    title: str
    description: str
    content: str
    order: int


class LessonUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    content: str | None = None
    order: int | None = Field(default=None, ge=1)
