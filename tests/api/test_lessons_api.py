"""Lesson gating and completion over HTTP."""

from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.api import state
from tests.conftest import OWNER_ID, auth, seed_course


def _enroll(client: TestClient, course_id, user: str = "student-1") -> None:
    resp = client.post("/v1/enrollments", json={"course_id": str(course_id)}, headers=auth(user))
    assert resp.status_code == 201


def test_lesson_is_gated_until_enrolled(client: TestClient, published_course) -> None:
    course, lessons = published_course
    url = f"/v1/courses/{course.id}/lessons/{lessons[0].id}"

    access = client.get(f"{url}/access", headers=auth()).json()
    assert access == {"allowed": False, "reason": "enrollment_required"}
    resp = client.get(url, headers=auth())
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "enrollment_required"

    _enroll(client, course.id)
    assert client.get(f"{url}/access", headers=auth()).json()["allowed"] is True
    resp = client.get(url, headers=auth())
    assert resp.status_code == 200
    body = resp.json()
    assert body["content"] == "body 1.1"
    assert body["previous"] is None
    assert body["next"]["id"] == str(lessons[1].id)


def test_owner_reads_without_enrolling(client: TestClient, published_course) -> None:
    course, lessons = published_course
    resp = client.get(
        f"/v1/courses/{course.id}/lessons/{lessons[3].id}",
        headers=auth(OWNER_ID, ["instructor"]),
    )
    assert resp.status_code == 200
    assert resp.json()["previous"]["id"] == str(lessons[2].id)
    assert resp.json()["next"] is None


def test_lesson_from_other_course_is_404(client: TestClient, published_course) -> None:
    course, _ = published_course
    _, other_lessons = seed_course(state.catalog_repo, slug="other-course")
    _enroll(client, course.id)
    resp = client.get(f"/v1/courses/{course.id}/lessons/{other_lessons[0].id}", headers=auth())
    assert resp.status_code == 404


def test_completing_every_lesson_completes_course(client: TestClient, published_course) -> None:
    course, lessons = published_course
    _enroll(client, course.id)

    seen = []
    for lesson in lessons:
        resp = client.post(
            f"/v1/courses/{course.id}/lessons/{lesson.id}/complete", headers=auth()
        )
        assert resp.status_code == 200
        seen.append(resp.json()["progress"])
    assert seen == [25, 50, 75, 100]

    body = client.get(f"/v1/enrollments/{course.id}/status", headers=auth()).json()
    assert body["enrollment"]["status"] == "completed"
    assert body["enrollment"]["completed_at"] is not None


def test_repeat_completion_is_idempotent(client: TestClient, published_course) -> None:
    course, lessons = published_course
    _enroll(client, course.id)
    url = f"/v1/courses/{course.id}/lessons/{lessons[0].id}/complete"
    first = client.post(url, headers=auth()).json()
    second = client.post(url, headers=auth()).json()
    assert first["progress"] == second["progress"] == 25


def test_owner_must_enroll_to_record_completion(client: TestClient, published_course) -> None:
    course, lessons = published_course
    resp = client.post(
        f"/v1/courses/{course.id}/lessons/{lessons[0].id}/complete",
        headers=auth(OWNER_ID, ["instructor"]),
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "enrollment_required"


def test_withdrawn_student_loses_access(client: TestClient, published_course) -> None:
    course, lessons = published_course
    _enroll(client, course.id)
    client.delete(f"/v1/enrollments/{course.id}", headers=auth())
    resp = client.get(f"/v1/courses/{course.id}/lessons/{lessons[0].id}", headers=auth())
    assert resp.status_code == 403


def test_outline_hides_draft_courses_from_students(client: TestClient) -> None:
    course, lessons = seed_course(state.catalog_repo, slug="draft-outline", status="draft")
    resp = client.get(f"/v1/courses/{course.id}/lessons", headers=auth())
    assert resp.status_code == 403

    resp = client.get(f"/v1/courses/{course.id}/lessons", headers=auth(OWNER_ID, ["instructor"]))
    assert resp.status_code == 200
    assert [row["id"] for row in resp.json()] == [str(lesson.id) for lesson in lessons]


def test_course_list_shows_own_drafts_only(client: TestClient, published_course) -> None:
    seed_course(state.catalog_repo, slug="mine-draft", status="draft")
    seed_course(state.catalog_repo, slug="their-draft", owner_id="instructor-2", status="draft")

    def slugs(headers: dict[str, str]) -> set[str]:
        return {c["slug"] for c in client.get("/v1/courses", headers=headers).json()}

    assert slugs(auth()) == {"python-101"}
    assert slugs(auth(OWNER_ID, ["instructor"])) == {"python-101", "mine-draft"}
    assert slugs(auth("root", ["admin"])) == {"python-101", "mine-draft", "their-draft"}
