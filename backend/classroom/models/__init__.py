from classroom.models.user import User, UserRole
from classroom.models.course import Course, Lesson
from classroom.models.quiz import Question, QuestionType, Quiz
from classroom.models.enrollment import Enrollment, LessonCompletion
from classroom.models.submission import QuizSubmission

__all__ = [
    "User",
    "UserRole",
    "Course",
    "Lesson",
    "Quiz",
    "Question",
    "QuestionType",
    "Enrollment",
    "LessonCompletion",
    "QuizSubmission",
]
