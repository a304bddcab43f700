"""Demo: enroll, work through a course, take a quiz, submit and grade.

Run with:
    python scripts/demo_enrollment_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.api import state
from learnhub.main import app
from learnhub.services import token_service


def _auth(user: str, *roles: str) -> dict[str, str]:
    token = token_service.create_access_token(sub=user, roles=list(roles) or None)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    courses = state.catalog_repo.list_courses()
    course = courses[0] if courses else state.seed_sample_course()
    student = _auth("student-1")
    instructor = _auth(course.owner_id, "instructor")
    lessons = state.catalog_repo.ordered_lessons(course.id)

    # ── Step 1: lesson is gated before enrollment ───────────────────
    r = client.get(f"/v1/courses/{course.id}/lessons/{lessons[0].id}", headers=student)
    print(f"1. GET  lesson (not enrolled)  → {r.status_code}  {r.json()['error']['kind']}")

    # ── Step 2: enroll ──────────────────────────────────────────────
    r = client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=student)
    print(f"2. POST /v1/enrollments        → {r.status_code}  progress={r.json()['progress']}")

    # ── Step 3: complete every lesson ───────────────────────────────
    for i, lesson in enumerate(lessons, start=1):
        r = client.post(
            f"/v1/courses/{course.id}/lessons/{lesson.id}/complete", headers=student
        )
        body = r.json()
        print(f"3.{i} complete {lesson.title:<12} → progress={body['progress']} {body['status']}")

    # ── Step 4: instructor adds a quiz, student scores it ───────────
    r = client.post(
        f"/v1/lessons/{lessons[0].id}/quizzes",
        json={
            "question": "Which keyword defines a function?",
            "type": "multiple_choice",
            "options": ["def", "fun", "lambda"],
            "answer": "def",
        },
        headers=instructor,
    )
    quiz_id = r.json()["id"]
    r = client.post(
        "/v1/quizzes/score",
        json={"quiz_ids": [quiz_id], "answers": {quiz_id: "  DEF "}},
        headers=student,
    )
    print(f"4. POST /v1/quizzes/score      → {r.status_code}  {r.json()['percentage']}%")

    # ── Step 5: assignment, late submission, grade ──────────────────
    r = client.post(
        f"/v1/lessons/{lessons[-1].id}/assignments",
        json={
            "title": "Word count",
            "description": "Count words in a file.",
            "due_date": 1,
            "late_penalty_percent": 10,
        },
        headers=instructor,
    )
    assignment_id = r.json()["id"]
    r = client.post(
        f"/v1/assignments/{assignment_id}/submissions",
        json={"content": "print(len(open('f').read().split()))"},
        headers=student,
    )
    submission = r.json()
    print(f"5. submit (late={submission['is_late']})       → {r.status_code}")
    r = client.put(
        f"/v1/submissions/{submission['id']}/grade",
        json={"grade": 90, "expected_version": submission["version"]},
        headers=instructor,
    )
    print(
        f"6. PUT  grade 90                → {r.status_code}  "
        f"display_grade={r.json()['display_grade']}"
    )


if __name__ == "__main__":
    main()
