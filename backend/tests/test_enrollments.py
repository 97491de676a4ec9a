import uuid

import pytest
from sqlalchemy import select

from classroom.models.enrollment import Enrollment
from classroom.models.user import UserRole
from classroom.services.learning import InvalidGradeError, LearningService


def _enroll(client, headers, course_id):
    return client.post("/enrollments", headers=headers, json={"course_id": course_id})


def test_enroll_starts_at_zero_and_rejects_duplicates(client, student, course_id):
    r1 = _enroll(client, student[1], course_id)
    assert r1.status_code == 200
    assert r1.json()["progress"] == 0
    assert r1.json()["grade"] is None

    r2 = _enroll(client, student[1], course_id)
    assert r2.status_code == 409
    assert r2.json()["error_code"] == "already_enrolled"

    mine = client.get("/enrollments/me", headers=student[1])
    assert mine.status_code == 200
    assert [e["course_id"] for e in mine.json()] == [course_id]


def test_enroll_unknown_or_inactive_course(client, teacher, student, course_id):
    assert _enroll(client, student[1], str(uuid.uuid4())).status_code == 404

    assert client.delete(f"/courses/{course_id}", headers=teacher[1]).status_code == 200
    assert _enroll(client, student[1], course_id).status_code == 404


def test_completing_lessons_updates_progress(client, student, course_id, lesson_ids):
    _enroll(client, student[1], course_id)

    r = client.post(f"/lessons/{lesson_ids[0]}/complete", headers=student[1])
    assert r.status_code == 200
    assert r.json()["progress"] == 25

    r = client.post(f"/lessons/{lesson_ids[1]}/complete", headers=student[1])
    assert r.json()["progress"] == 50
    assert r.json()["completed_lessons"] == 2
    assert r.json()["total_lessons"] == 4

    # completing the same lesson twice counts once
    r = client.post(f"/lessons/{lesson_ids[1]}/complete", headers=student[1])
    assert r.json()["progress"] == 50

    r = client.get(f"/progress/courses/{course_id}", headers=student[1])
    assert r.status_code == 200
    assert r.json()["progress"] == 50


def test_new_lesson_recomputes_progress(client, teacher, student, course_id, lesson_ids):
    _enroll(client, student[1], course_id)
    for lid in lesson_ids[:2]:
        client.post(f"/lessons/{lid}/complete", headers=student[1])

    r = client.post(f"/courses/{course_id}/lessons", headers=teacher[1], json={"title": "Lesson 5"})
    assert r.status_code == 200
    assert r.json()["order"] == 5

    r = client.get(f"/progress/courses/{course_id}", headers=student[1])
    assert r.json()["progress"] == 40


def test_complete_lesson_requires_enrollment(client, student, lesson_ids):
    r = client.post(f"/lessons/{lesson_ids[0]}/complete", headers=student[1])
    assert r.status_code == 403


def test_progress_left_untouched_when_course_has_no_lessons(db, client, student, course_id):
    _enroll(client, student[1], course_id)

    enrollment = db.scalar(
        select(Enrollment).where(Enrollment.course_id == uuid.UUID(course_id), Enrollment.student_id == student[0])
    )
    enrollment.progress = 40
    db.commit()

    service = LearningService(db)
    assert service.recompute_progress(enrollment) is None
    db.commit()
    db.refresh(enrollment)
    assert enrollment.progress == 40


def test_teacher_sets_grade_within_bounds(client, teacher, student, course_id):
    enrollment_id = _enroll(client, student[1], course_id).json()["id"]

    r = client.put(f"/enrollments/{enrollment_id}/grade", headers=teacher[1], json={"grade": 150})
    assert r.status_code == 400
    assert r.json()["error_code"] == "invalid_grade"

    r = client.put(f"/enrollments/{enrollment_id}/grade", headers=teacher[1], json={"grade": 87.5})
    assert r.status_code == 200
    assert r.json()["grade"] == 87.5

    roster = client.get(f"/courses/{course_id}/enrollments", headers=teacher[1])
    assert roster.status_code == 200
    assert roster.json()[0]["grade"] == 87.5
    assert roster.json()[0]["student_name"].startswith("student_")


def test_only_course_owner_sets_grade(client, make_user, student, course_id):
    enrollment_id = _enroll(client, student[1], course_id).json()["id"]
    _, other_teacher = make_user(UserRole.teacher)

    r = client.put(f"/enrollments/{enrollment_id}/grade", headers=other_teacher, json={"grade": 90})
    assert r.status_code == 403

    r = client.put(f"/enrollments/{enrollment_id}/grade", headers=student[1], json={"grade": 90})
    assert r.status_code == 403


def test_set_grade_rejects_non_numbers(db, student, course_id, client):
    enrollment_id = uuid.UUID(_enroll(client, student[1], course_id).json()["id"])
    service = LearningService(db)

    for bad in (True, "90", float("nan"), -1):
        with pytest.raises(InvalidGradeError):
            service.set_grade(enrollment_id, bad)
