from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classroom.models.course import Course, Lesson
from classroom.models.enrollment import Enrollment, LessonCompletion
from classroom.models.quiz import Question, QuestionType, Quiz
from classroom.models.submission import QuizSubmission
from classroom.models.user import User
from classroom.services import grading
from classroom.services.progress import compute_progress

logger = logging.getLogger(__name__)


class LearningError(Exception):
    pass


class NotFoundError(LearningError):
    pass


class AlreadyEnrolledError(LearningError):
    pass


class NotEnrolledError(LearningError):
    pass


class InvalidGradeError(LearningError):
    pass


class DuplicateLessonOrderError(LearningError):
    pass


@dataclass(frozen=True)
class SubmissionOutcome:
    submission: QuizSubmission
    already_submitted: bool


class LearningService:
    def __init__(self, db: Session):
        self.db = db

    # Courses and lessons

    def get_course(self, course_id: uuid.UUID, *, active_only: bool = False) -> Course | None:
        stmt = select(Course).where(Course.id == course_id)
        if active_only:
            stmt = stmt.where(Course.is_active == True)  # noqa: E712
        return self.db.scalar(stmt)

    def list_courses(self, *, teacher_id: uuid.UUID | None = None) -> list[Course]:
        stmt = select(Course)
        if teacher_id is not None:
            stmt = stmt.where(Course.teacher_id == teacher_id)
        else:
            stmt = stmt.where(Course.is_active == True)  # noqa: E712
        return list(self.db.scalars(stmt.order_by(Course.created_at.desc())))

    def create_course(self, *, teacher: User, title: str, description: str = "", is_active: bool = True) -> Course:
        now = datetime.utcnow()
        course = Course(
            title=title,
            description=description or "",
            teacher_id=teacher.id,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.db.add(course)
        self.db.commit()
        logger.info("course %s created by %s", course.id, teacher.id)
        return course

    def update_course(self, course: Course, updates: dict[str, Any]) -> Course:
        for field in ("title", "description", "is_active"):
            if field in updates and updates[field] is not None:
                setattr(course, field, updates[field])
        course.updated_at = datetime.utcnow()
        self.db.commit()
        return course

    def delete_course(self, course: Course) -> None:
        # Soft delete: enrollments, grades and submissions stay readable.
        course.is_active = False
        course.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info("course %s deactivated", course.id)

    def list_lessons(self, course_id: uuid.UUID) -> list[Lesson]:
        return list(
            self.db.scalars(select(Lesson).where(Lesson.course_id == course_id).order_by(Lesson.order))
        )

    def create_lesson(
        self,
        course: Course,
        *,
        title: str,
        description: str = "",
        content: str = "",
        order: int | None = None,
    ) -> Lesson:
        if order is None:
            current_max = self.db.scalar(select(func.max(Lesson.order)).where(Lesson.course_id == course.id))
            order = int(current_max or 0) + 1

        now = datetime.utcnow()
        lesson = Lesson(
            course_id=course.id,
            title=title,
            description=description or "",
            content=content or "",
            order=int(order),
            created_at=now,
            updated_at=now,
        )
        self.db.add(lesson)
        self._flush_lesson(int(order))

        # A new lesson lowers everyone's completion ratio.
        self._recompute_course(course.id)

        self.db.commit()
        logger.info("lesson %s created in course %s at order %s", lesson.id, course.id, lesson.order)
        return lesson

    def get_lesson(self, lesson_id: uuid.UUID) -> Lesson | None:
        return self.db.scalar(select(Lesson).where(Lesson.id == lesson_id))

    def update_lesson(self, lesson: Lesson, updates: dict[str, Any]) -> Lesson:
        for field in ("title", "description", "content", "order"):
            if field in updates and updates[field] is not None:
                setattr(lesson, field, updates[field])
        lesson.updated_at = datetime.utcnow()
        self._flush_lesson(int(lesson.order))
        self.db.commit()
        return lesson

    def delete_lesson(self, lesson: Lesson) -> None:
        lesson_id, course_id = lesson.id, lesson.course_id

        self.db.execute(delete(LessonCompletion).where(LessonCompletion.lesson_id == lesson_id))
        self.db.execute(update(Quiz).where(Quiz.lesson_id == lesson_id).values(lesson_id=None))
        self.db.delete(lesson)
        self.db.flush()

        # Removing the last lesson leaves stored progress as it was.
        self._recompute_course(course_id)

        self.db.commit()
        logger.info("lesson %s deleted from course %s", lesson_id, course_id)

    def _flush_lesson(self, order: int) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateLessonOrderError(f"course already has a lesson at order {order}") from e

    def _recompute_course(self, course_id: uuid.UUID) -> None:
        enrollments = list(self.db.scalars(select(Enrollment).where(Enrollment.course_id == course_id)))
        for enrollment in enrollments:
            self.recompute_progress(enrollment)

    # Enrollments

    def get_enrollment(self, course_id: uuid.UUID, student_id: uuid.UUID) -> Enrollment | None:
        return self.db.scalar(
            select(Enrollment).where(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
        )

    def list_enrollments_for_course(self, course_id: uuid.UUID) -> list[tuple[Enrollment, User]]:
        rows = self.db.execute(
            select(Enrollment, User)
            .join(User, User.id == Enrollment.student_id)
            .where(Enrollment.course_id == course_id)
            .order_by(User.name)
        ).all()
        return [(e, u) for e, u in rows]

    def list_enrollments_for_student(self, student_id: uuid.UUID) -> list[Enrollment]:
        return list(
            self.db.scalars(
                select(Enrollment).where(Enrollment.student_id == student_id).order_by(Enrollment.enrolled_at.desc())
            )
        )

    def enroll(self, course_id: uuid.UUID, student: User) -> Enrollment:
        course = self.get_course(course_id, active_only=True)
        if course is None:
            raise NotFoundError("course not found")

        if self.get_enrollment(course.id, student.id) is not None:
            raise AlreadyEnrolledError("already enrolled in this course")

        enrollment = Enrollment(course_id=course.id, student_id=student.id, progress=0, enrolled_at=datetime.utcnow())
        self.db.add(enrollment)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise AlreadyEnrolledError("already enrolled in this course") from e

        self.db.commit()
        logger.info("student %s enrolled in course %s", student.id, course.id)
        return enrollment

    def set_grade(self, enrollment_id: uuid.UUID, grade: Any) -> Enrollment:
        enrollment = self.db.scalar(select(Enrollment).where(Enrollment.id == enrollment_id))
        if enrollment is None:
            raise NotFoundError("enrollment not found")

        if isinstance(grade, bool) or not isinstance(grade, (int, float)):
            raise InvalidGradeError("grade must be a number between 0 and 100")
        value = float(grade)
        if math.isnan(value) or value < 0 or value > 100:
            raise InvalidGradeError("grade must be a number between 0 and 100")

        enrollment.grade = value
        self.db.commit()
        return enrollment

    # Progress

    def count_completed_lessons(self, course_id: uuid.UUID, student_id: uuid.UUID) -> int:
        return int(
            self.db.scalar(
                select(func.count(func.distinct(LessonCompletion.lesson_id)))
                .select_from(LessonCompletion)
                .join(Lesson, Lesson.id == LessonCompletion.lesson_id)
                .where(Lesson.course_id == course_id, LessonCompletion.student_id == student_id)
            )
            or 0
        )

    def recompute_progress(self, enrollment: Enrollment) -> int | None:
        total = int(
            self.db.scalar(select(func.count(Lesson.id)).where(Lesson.course_id == enrollment.course_id)) or 0
        )
        completed = self.count_completed_lessons(enrollment.course_id, enrollment.student_id)

        progress = compute_progress(total, completed)
        if progress is None:
            logger.debug("course %s has no lessons, progress left at %s", enrollment.course_id, enrollment.progress)
            return None

        enrollment.progress = progress
        return progress

    def complete_lesson(self, lesson_id: uuid.UUID, student: User) -> Enrollment:
        lesson = self.db.scalar(select(Lesson).where(Lesson.id == lesson_id))
        if lesson is None:
            raise NotFoundError("lesson not found")

        enrollment = self.get_enrollment(lesson.course_id, student.id)
        if enrollment is None:
            raise NotEnrolledError("not enrolled in this course")

        already = self.db.scalar(
            select(LessonCompletion.id).where(
                LessonCompletion.lesson_id == lesson.id,
                LessonCompletion.student_id == student.id,
            )
        )
        if already is None:
            self.db.add(LessonCompletion(lesson_id=lesson.id, student_id=student.id, completed_at=datetime.utcnow()))
            try:
                self.db.flush()
            except IntegrityError:
                # Concurrent completion of the same lesson; the stored row wins.
                self.db.rollback()
                enrollment = self.get_enrollment(lesson.course_id, student.id)

        self.recompute_progress(enrollment)
        self.db.commit()
        logger.info("student %s completed lesson %s, progress=%s", student.id, lesson.id, enrollment.progress)
        return enrollment

    # Quizzes

    def get_quiz(self, quiz_id: uuid.UUID) -> Quiz | None:
        return self.db.scalar(select(Quiz).where(Quiz.id == quiz_id))

    def list_questions(self, quiz_id: uuid.UUID) -> list[Question]:
        return list(self.db.scalars(select(Question).where(Question.quiz_id == quiz_id).order_by(Question.position)))

    def create_quiz(
        self,
        course: Course,
        *,
        title: str,
        questions: Sequence[dict[str, Any]],
        passing_score: int | None = None,
        time_limit: int | None = None,
        lesson_id: uuid.UUID | None = None,
        default_passing_score: int = 70,
    ) -> Quiz:
        if lesson_id is not None:
            lesson = self.db.scalar(select(Lesson).where(Lesson.id == lesson_id, Lesson.course_id == course.id))
            if lesson is None:
                raise NotFoundError("lesson not found")

        threshold = default_passing_score if passing_score is None else int(passing_score)
        definition = grading.build_quiz(questions, passing_score=threshold, time_limit=time_limit)

        quiz = Quiz(
            course_id=course.id,
            lesson_id=lesson_id,
            title=title,
            passing_score=definition.passing_score,
            time_limit=time_limit,
        )
        self.db.add(quiz)
        self.db.flush()

        for position, q in enumerate(definition.questions):
            if isinstance(q, grading.MultipleChoiceQuestion):
                row = Question(
                    quiz_id=quiz.id,
                    position=position,
                    type=QuestionType.multiple_choice,
                    prompt=q.prompt,
                    options=list(q.options),
                    correct_answer=str(q.correct_option),
                    points=q.points,
                )
            else:
                row = Question(
                    quiz_id=quiz.id,
                    position=position,
                    type=QuestionType.free_text,
                    prompt=q.prompt,
                    options=None,
                    correct_answer=q.correct_answer,
                    points=q.points,
                )
            self.db.add(row)

        self.db.commit()
        logger.info("quiz %s created in course %s with %s questions", quiz.id, course.id, len(definition.questions))
        return quiz

    def load_definition(self, quiz: Quiz) -> grading.Quiz:
        records = [
            {
                "id": str(q.id),
                "type": q.type.value,
                "prompt": q.prompt,
                "options": q.options,
                "correct_answer": q.correct_answer,
                "points": q.points,
            }
            for q in self.list_questions(quiz.id)
        ]
        return grading.build_quiz(
            records,
            passing_score=quiz.passing_score,
            time_limit=quiz.time_limit,
            quiz_id=str(quiz.id),
        )

    def get_submission(self, quiz_id: uuid.UUID, student_id: uuid.UUID) -> QuizSubmission | None:
        return self.db.scalar(
            select(QuizSubmission).where(QuizSubmission.quiz_id == quiz_id, QuizSubmission.student_id == student_id)
        )

    def submit_quiz(self, quiz_id: uuid.UUID, student: User, answers: dict[str, Any]) -> SubmissionOutcome:
        quiz = self.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("quiz not found")

        # A stored submission is authoritative and is never regraded.
        existing = self.get_submission(quiz.id, student.id)
        if existing is not None:
            logger.info("quiz %s already submitted by %s, returning stored result", quiz.id, student.id)
            return SubmissionOutcome(submission=existing, already_submitted=True)

        if self.get_enrollment(quiz.course_id, student.id) is None:
            raise NotEnrolledError("not enrolled in this course")

        definition = self.load_definition(quiz)
        keys = {grading.question_key(q, i) for i, q in enumerate(definition.questions)}
        kept = {k: v for k, v in (answers or {}).items() if k in keys}

        result = grading.grade(definition, kept)

        submission = QuizSubmission(
            quiz_id=quiz.id,
            student_id=student.id,
            answers=kept,
            score=result.score,
            percentage=result.percentage,
            passed=result.passed,
            correct=result.correct,
            total=result.total,
            submitted_at=datetime.utcnow(),
        )
        self.db.add(submission)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_submission(quiz.id, student.id)
            if existing is None:
                raise
            logger.info("concurrent submission for quiz %s by %s, keeping stored result", quiz.id, student.id)
            return SubmissionOutcome(submission=existing, already_submitted=True)

        self.db.commit()
        logger.info(
            "quiz %s graded for %s: score=%s percentage=%s passed=%s",
            quiz.id,
            student.id,
            result.score,
            result.percentage,
            result.passed,
        )
        return SubmissionOutcome(submission=submission, already_submitted=False)
