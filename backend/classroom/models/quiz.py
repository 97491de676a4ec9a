import enum
import uuid

from sqlalchemy import JSON, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from classroom.db.base import Base


class QuestionType(str, enum.Enum):
    multiple_choice = "multiple_choice"
    free_text = "free_text"


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("courses.id"), index=True)
    lesson_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("lessons.id"), nullable=True)
    title: Mapped[str] = mapped_column(String(300), default="")
    passing_score: Mapped[int] = mapped_column(Integer, default=70)
    time_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quiz_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True)
    position: Mapped[int] = mapped_column(Integer)

    type: Mapped[QuestionType] = mapped_column(Enum(QuestionType))
    prompt: Mapped[str] = mapped_column(String, default="")
    options: Mapped[list | None] = mapped_column(JSON, nullable=True)
    # Stored as text for both types; parsed per type when the quiz is built.
    correct_answer: Mapped[str] = mapped_column(String, default="")
    points: Mapped[int] = mapped_column(Integer, default=1)

    __table_args__ = (UniqueConstraint("quiz_id", "position", name="uq_question_quiz_position"),)
