from classroom.routers import courses, enrollments, health, lessons, progress, quizzes

__all__ = [
    "courses",
    "enrollments",
    "health",
    "lessons",
    "progress",
    "quizzes",
]
