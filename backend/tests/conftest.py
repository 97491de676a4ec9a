import sys
import time
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jose import jwt

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from classroom.core.config import settings
from classroom.db.base import Base
from classroom.db import session as session_module
from classroom.main import create_app

# Import models so that they are registered in Base.metadata before create_all.
from classroom.models.user import User, UserRole
from classroom.models.course import Course, Lesson  # noqa: F401
from classroom.models.quiz import Quiz, Question  # noqa: F401
from classroom.models.enrollment import Enrollment, LessonCompletion  # noqa: F401
from classroom.models.submission import QuizSubmission  # noqa: F401


class _MemoryRedis:
    def __init__(self):
        self._data: dict[str, tuple[str, float | None]] = {}

    def ping(self):
        return True

    def _now(self) -> float:
        return time.time()

    def _get_entry(self, key: str):
        v = self._data.get(key)
        if not v:
            return None
        value, exp = v
        if exp is not None and exp <= self._now():
            self._data.pop(key, None)
            return None
        return value, exp

    def get(self, key: str):
        entry = self._get_entry(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        if nx and self._get_entry(key) is not None:
            return None
        exp = (self._now() + int(ex)) if ex else None
        self._data[key] = (value, exp)
        return True

    def delete(self, key: str):
        self._data.pop(key, None)
        return 1

    def incr(self, key: str):
        cur = self.get(key)
        n = int(cur or 0) + 1
        _, exp = self._data.get(key, ("", None))
        self._data[key] = (str(n), exp)
        return n

    def expire(self, key: str, seconds: int):
        entry = self._get_entry(key)
        if not entry:
            return False
        value, _ = entry
        self._data[key] = (value, self._now() + int(seconds))
        return True

    def ttl(self, key: str):
        entry = self._get_entry(key)
        if not entry:
            return -2
        _, exp = entry
        if exp is None:
            return -1
        return max(0, int(exp - self._now()))


# Configure test DB (SQLite in-memory) at import time so all tests importing
# classroom.db.session.SessionLocal will get the patched version.
_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
Base.metadata.create_all(bind=_engine)
session_module.engine = _engine
session_module.SessionLocal = session_module.sessionmaker(autocommit=False, autoflush=False, bind=_engine)


# Stub Redis at import time (rate limiting + submission locks).
_mem_redis = _MemoryRedis()
import classroom.core.redis_client as redis_client_module

redis_client_module.get_redis = lambda: _mem_redis


@pytest.fixture(scope="session")
def client():
    app = create_app()

    # Ensure app dependencies use our session factory.
    def _get_db_override():
        db = session_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[session_module.get_db] = _get_db_override
    return TestClient(app)


@pytest.fixture()
def db():
    with session_module.SessionLocal() as session:
        yield session


@pytest.fixture()
def mem_redis():
    return _mem_redis


def _token_for(user_id: uuid.UUID) -> str:
    return jwt.encode(
        {"sub": str(user_id), "iss": settings.jwt_issuer},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture()
def make_user():
    def _make(role: UserRole) -> tuple[uuid.UUID, dict[str, str]]:
        with session_module.SessionLocal() as db:
            user = User(name=f"{role.value}_{uuid.uuid4().hex[:8]}", role=role)
            db.add(user)
            db.commit()
            uid = user.id
        return uid, {"Authorization": f"Bearer {_token_for(uid)}"}

    return _make


@pytest.fixture()
def teacher(make_user):
    return make_user(UserRole.teacher)


@pytest.fixture()
def student(make_user):
    return make_user(UserRole.student)


@pytest.fixture()
def course_id(client, teacher):
    _, headers = teacher
    r = client.post("/courses", headers=headers, json={"title": "Geography", "description": "Capitals"})
    assert r.status_code == 200
    return r.json()["id"]


@pytest.fixture()
def lesson_ids(client, teacher, course_id):
    _, headers = teacher
    ids = []
    for i in range(4):
        r = client.post(f"/courses/{course_id}/lessons", headers=headers, json={"title": f"Lesson {i + 1}"})
        assert r.status_code == 200
        ids.append(r.json()["id"])
    return ids
