import uuid
import time
import json
import logging
from datetime import datetime
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classroom.core.config import settings
from classroom.routers import courses, enrollments, health, lessons, progress, quizzes
from classroom.services.grading import QuizDefinitionError
from classroom.services.learning import (
    AlreadyEnrolledError,
    DuplicateLessonOrderError,
    InvalidGradeError,
    LearningError,
    NotEnrolledError,
    NotFoundError,
)

_LEARNING_ERRORS: list[tuple[type[LearningError], int, str]] = [
    (NotFoundError, 404, "not_found"),
    (AlreadyEnrolledError, 409, "already_enrolled"),
    (NotEnrolledError, 403, "not_enrolled"),
    (InvalidGradeError, 400, "invalid_grade"),
    (DuplicateLessonOrderError, 409, "duplicate_lesson_order"),
]


def create_app() -> FastAPI:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app = FastAPI(title="Classroom API", version="1.0.0")

    logger = logging.getLogger("classroom")

    allow_origins = [o.strip() for o in str(settings.cors_allow_origins or "").split(",") if o.strip()]
    if "*" in allow_origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not include '*' when allow_credentials=true")

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            path = request.url.path
            if not path.startswith("/health"):
                logger.info(
                    json.dumps(
                        {
                            "ts": datetime.utcnow().isoformat(),
                            "rid": rid,
                            "user_id": getattr(request.state, "user_id", None),
                            "method": request.method,
                            "path": path,
                            "status": status_code,
                            "duration_ms": int((time.perf_counter() - t0) * 1000),
                        },
                        ensure_ascii=False,
                    )
                )
        response.headers["X-Request-ID"] = rid
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    def _request_id(request: Request) -> str | None:
        rid = getattr(getattr(request, "state", None), "request_id", None)
        rid = str(rid or "").strip()
        return rid or None

    def _error(request: Request, status_code: int, error_code: str, error_message: str, headers=None) -> JSONResponse:
        payload = {
            "ok": False,
            "error_code": error_code,
            "error_message": error_message,
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=int(status_code), content=payload, headers=headers)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            error_code = str(detail.get("error_code") or "http_error")
            error_message = str(detail.get("error_message") or detail.get("detail") or "request failed")
        else:
            error_code = (
                "forbidden"
                if int(exc.status_code) == 403
                else "unauthorized"
                if int(exc.status_code) == 401
                else "http_error"
            )
            error_message = str(detail or "request failed")
        return _error(request, exc.status_code, error_code, error_message, headers=getattr(exc, "headers", None))

    @app.exception_handler(LearningError)
    async def learning_error_handler(request: Request, exc: LearningError):
        for exc_type, status_code, error_code in _LEARNING_ERRORS:
            if isinstance(exc, exc_type):
                return _error(request, status_code, error_code, str(exc))
        return _error(request, 400, "learning_error", str(exc))

    @app.exception_handler(QuizDefinitionError)
    async def quiz_definition_error_handler(request: Request, exc: QuizDefinitionError):
        return _error(request, 422, "invalid_quiz", str(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return _error(request, 500, "internal_error", "internal server error")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(courses.router)
    app.include_router(lessons.router)
    app.include_router(quizzes.router)
    app.include_router(enrollments.router)
    app.include_router(progress.router)

    return app


app = create_app()
