import uuid

from sqlalchemy import select

from classroom.models.enrollment import LessonCompletion
from classroom.models.quiz import Quiz
from classroom.models.user import UserRole


def _enroll(client, headers, course_id):
    r = client.post("/enrollments", headers=headers, json={"course_id": course_id})
    assert r.status_code == 200
    return r.json()


def _progress(client, headers, course_id) -> int:
    r = client.get(f"/progress/courses/{course_id}", headers=headers)
    assert r.status_code == 200
    return r.json()["progress"]


def test_duplicate_lesson_order_is_a_conflict(client, teacher, course_id):
    r1 = client.post(f"/courses/{course_id}/lessons", headers=teacher[1], json={"title": "A", "order": 1})
    assert r1.status_code == 200

    r2 = client.post(f"/courses/{course_id}/lessons", headers=teacher[1], json={"title": "B", "order": 1})
    assert r2.status_code == 409
    assert r2.json()["error_code"] == "duplicate_lesson_order"

    r = client.get(f"/courses/{course_id}/lessons", headers=teacher[1])
    assert [lesson["title"] for lesson in r.json()] == ["A"]


def test_get_course(client, teacher, student, course_id):
    r = client.get(f"/courses/{course_id}", headers=student[1])
    assert r.status_code == 200
    assert r.json()["title"] == "Geography"
    assert r.json()["teacher_id"] == str(teacher[0])

    assert client.get(f"/courses/{uuid.uuid4()}", headers=student[1]).status_code == 404
    assert client.get("/courses/not-a-uuid", headers=student[1]).status_code == 400


def test_inactive_course_is_hidden_from_learners(client, teacher, student, course_id):
    assert client.delete(f"/courses/{course_id}", headers=teacher[1]).status_code == 200

    assert client.get(f"/courses/{course_id}", headers=student[1]).status_code == 404
    r = client.get(f"/courses/{course_id}", headers=teacher[1])
    assert r.status_code == 200
    assert r.json()["is_active"] is False


def test_update_lesson(client, teacher, course_id, lesson_ids):
    r = client.patch(f"/lessons/{lesson_ids[0]}", headers=teacher[1], json={"title": "Rivers", "order": 10})
    assert r.status_code == 200
    assert r.json()["title"] == "Rivers"
    assert r.json()["order"] == 10

    r = client.get(f"/courses/{course_id}/lessons", headers=teacher[1])
    assert [lesson["title"] for lesson in r.json()] == ["Lesson 2", "Lesson 3", "Lesson 4", "Rivers"]


def test_update_lesson_to_taken_order_is_a_conflict(client, teacher, lesson_ids):
    r = client.patch(f"/lessons/{lesson_ids[1]}", headers=teacher[1], json={"order": 1})
    assert r.status_code == 409
    assert r.json()["error_code"] == "duplicate_lesson_order"


def test_only_course_owner_edits_lessons(client, make_user, student, lesson_ids):
    _, other_headers = make_user(UserRole.teacher)
    assert client.patch(f"/lessons/{lesson_ids[0]}", headers=other_headers, json={"title": "X"}).status_code == 403
    assert client.delete(f"/lessons/{lesson_ids[0]}", headers=other_headers).status_code == 403
    assert client.delete(f"/lessons/{lesson_ids[0]}", headers=student[1]).status_code == 403

    _, admin_headers = make_user(UserRole.admin)
    r = client.patch(f"/lessons/{lesson_ids[0]}", headers=admin_headers, json={"title": "Edited by admin"})
    assert r.status_code == 200


def test_unknown_lesson(client, teacher):
    assert client.patch(f"/lessons/{uuid.uuid4()}", headers=teacher[1], json={"title": "X"}).status_code == 404
    assert client.delete(f"/lessons/{uuid.uuid4()}", headers=teacher[1]).status_code == 404
    assert client.delete("/lessons/nope", headers=teacher[1]).status_code == 400


def test_deleting_uncompleted_lesson_raises_progress(client, teacher, student, course_id, lesson_ids):
    _enroll(client, student[1], course_id)
    for lid in lesson_ids[:2]:
        client.post(f"/lessons/{lid}/complete", headers=student[1])
    assert _progress(client, student[1], course_id) == 50

    assert client.delete(f"/lessons/{lesson_ids[3]}", headers=teacher[1]).status_code == 200

    r = client.get(f"/progress/courses/{course_id}", headers=student[1])
    assert r.json()["progress"] == 67
    assert r.json()["total_lessons"] == 3
    assert r.json()["completed_lessons"] == 2


def test_deleting_completed_lesson_drops_its_completions(db, client, teacher, student, course_id, lesson_ids):
    _enroll(client, student[1], course_id)
    for lid in lesson_ids[:2]:
        client.post(f"/lessons/{lid}/complete", headers=student[1])

    assert client.delete(f"/lessons/{lesson_ids[0]}", headers=teacher[1]).status_code == 200

    assert _progress(client, student[1], course_id) == 33
    remaining = db.scalars(
        select(LessonCompletion).where(LessonCompletion.lesson_id == uuid.UUID(lesson_ids[0]))
    ).all()
    assert remaining == []


def test_deleting_last_lesson_keeps_progress(client, teacher, student):
    r = client.post("/courses", headers=teacher[1], json={"title": "Single"})
    course_id = r.json()["id"]
    r = client.post(f"/courses/{course_id}/lessons", headers=teacher[1], json={"title": "Only"})
    lesson_id = r.json()["id"]

    _enroll(client, student[1], course_id)
    client.post(f"/lessons/{lesson_id}/complete", headers=student[1])
    assert _progress(client, student[1], course_id) == 100

    assert client.delete(f"/lessons/{lesson_id}", headers=teacher[1]).status_code == 200

    r = client.get(f"/progress/courses/{course_id}", headers=student[1])
    assert r.json()["total_lessons"] == 0
    assert r.json()["progress"] == 100


def test_deleting_lesson_detaches_its_quizzes(db, client, teacher, student, course_id, lesson_ids):
    body = {
        "title": "Lesson quiz",
        "lesson_id": lesson_ids[0],
        "questions": [{"type": "free_text", "prompt": "Capital of Italy?", "correct_answer": "Rome"}],
    }
    r = client.post(f"/courses/{course_id}/quizzes", headers=teacher[1], json=body)
    assert r.status_code == 200
    quiz_id = r.json()["quiz_id"]

    assert client.delete(f"/lessons/{lesson_ids[0]}", headers=teacher[1]).status_code == 200

    quiz = db.scalar(select(Quiz).where(Quiz.id == uuid.UUID(quiz_id)))
    assert quiz is not None
    assert quiz.lesson_id is None
    assert client.get(f"/quizzes/{quiz_id}", headers=student[1]).status_code == 200
