"""Assignments end to end: authoring, submission, grading and stats."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import OWNER_ID, auth

OWNER = auth(OWNER_ID, ["instructor"])


def _create(client: TestClient, lesson_id, **fields) -> dict:
    body = {"title": "Word count", "description": "Count the words in a file."}
    body.update(fields)
    resp = client.post(f"/v1/lessons/{lesson_id}/assignments", json=body, headers=OWNER)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _enroll(client: TestClient, course_id, user: str = "student-1") -> None:
    client.post("/v1/enrollments", json={"course_id": str(course_id)}, headers=auth(user))


def test_late_submission_is_graded_with_penalty(client: TestClient, published_course) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id, due_date=1, late_penalty_percent=10)
    _enroll(client, course.id)

    resp = client.post(
        f"/v1/assignments/{assignment['id']}/submissions",
        json={"content": "print(len(text.split()))"},
        headers=auth(),
    )
    assert resp.status_code == 201
    submission = resp.json()
    assert submission["is_late"] is True
    assert submission["grade"] is None

    resp = client.put(
        f"/v1/submissions/{submission['id']}/grade",
        json={"grade": 90, "feedback": "Nice", "expected_version": 1},
        headers=OWNER,
    )
    assert resp.status_code == 200
    graded = resp.json()
    assert (graded["grade"], graded["display_grade"], graded["version"]) == (90.0, 81.0, 2)
    assert graded["graded_by"] == OWNER_ID

    own = client.get(f"/v1/submissions/{submission['id']}", headers=auth()).json()
    assert own["display_grade"] == 81.0


def test_stale_grade_write_conflicts(client: TestClient, published_course) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id)
    _enroll(client, course.id)
    sid = client.post(
        f"/v1/assignments/{assignment['id']}/submissions",
        json={"content": "x"},
        headers=auth(),
    ).json()["id"]

    client.put(f"/v1/submissions/{sid}/grade", json={"grade": 70, "expected_version": 1}, headers=OWNER)
    resp = client.put(
        f"/v1/submissions/{sid}/grade", json={"grade": 75, "expected_version": 1}, headers=OWNER
    )
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["kind"] == "concurrent_modification"
    assert error["context"]["current_version"] == 2


def test_grade_out_of_range_is_422(client: TestClient, published_course) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id, max_points=50)
    _enroll(client, course.id)
    sid = client.post(
        f"/v1/assignments/{assignment['id']}/submissions",
        json={"content": "x"},
        headers=auth(),
    ).json()["id"]

    resp = client.put(f"/v1/submissions/{sid}/grade", json={"grade": 51}, headers=OWNER)
    assert resp.status_code == 422
    assert resp.json()["error"]["kind"] == "grade_out_of_range"
    assert resp.json()["error"]["context"]["max_points"] == 50


def test_submission_rules(client: TestClient, published_course) -> None:
    course, lessons = published_course
    closed = _create(client, lessons[0].id, due_date=1, allow_late_submission=False)
    url = f"/v1/assignments/{closed['id']}/submissions"

    assert client.post(url, json={"content": "x"}, headers=auth()).status_code == 403
    _enroll(client, course.id)

    empty = client.post(url, json={"content": "  "}, headers=auth())
    assert (empty.status_code, empty.json()["error"]["kind"]) == (422, "empty_submission")
    late = client.post(url, json={"content": "x"}, headers=auth())
    assert (late.status_code, late.json()["error"]["kind"]) == (409, "assignment_closed")

    open_ = _create(client, lessons[0].id)
    url = f"/v1/assignments/{open_['id']}/submissions"
    assert client.post(url, json={"content": "x"}, headers=auth()).status_code == 201
    again = client.post(url, json={"content": "y"}, headers=auth())
    assert (again.status_code, again.json()["error"]["kind"]) == (409, "already_submitted")


def test_assignment_validation_errors(client: TestClient, published_course) -> None:
    _, lessons = published_course
    resp = client.post(
        f"/v1/lessons/{lessons[0].id}/assignments",
        json={"title": "x", "description": "ok", "late_penalty_percent": 150},
        headers=OWNER,
    )
    assert resp.status_code == 422
    assert set(resp.json()["error"]["context"]["errors"]) == {"title", "late_penalty_percent"}


def test_bulk_grade_and_stats(client: TestClient, published_course) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id)
    ids = []
    for user in ("s1", "s2", "s3"):
        _enroll(client, course.id, user)
        ids.append(
            client.post(
                f"/v1/assignments/{assignment['id']}/submissions",
                json={"content": f"by {user}"},
                headers=auth(user),
            ).json()["id"]
        )

    resp = client.post(
        f"/v1/assignments/{assignment['id']}/grades/bulk",
        json={
            "grades": [
                {"submission_id": ids[0], "grade": 80},
                {"submission_id": ids[1], "grade": 90},
                {"submission_id": ids[2], "grade": 101},
            ]
        },
        headers=OWNER,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["graded"]) == 2
    assert body["failed"] == {ids[2]: "grade_out_of_range"}

    stats = client.get(
        f"/v1/assignments/{assignment['id']}/submissions/stats", headers=OWNER
    ).json()
    assert stats == {"total": 3, "graded": 2, "pending": 1, "average_grade": 85.0}


def test_submission_listing_is_scoped(client: TestClient, published_course) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id)
    for user in ("s1", "s2"):
        _enroll(client, course.id, user)
        client.post(
            f"/v1/assignments/{assignment['id']}/submissions",
            json={"content": "x"},
            headers=auth(user),
        )
    url = f"/v1/assignments/{assignment['id']}/submissions"

    mine = client.get(url, headers=auth("s1")).json()
    assert [s["student_id"] for s in mine] == ["s1"]
    everyone = client.get(url, headers=OWNER).json()
    assert sorted(s["student_id"] for s in everyone) == ["s1", "s2"]

    peek = client.get(f"/v1/submissions/{mine[0]['id']}", headers=auth("s2"))
    assert peek.status_code == 403


def test_lesson_assignments_are_listed_for_enrolled_students(
    client: TestClient, published_course
) -> None:
    course, lessons = published_course
    first = _create(client, lessons[0].id, title="Word count")
    second = _create(client, lessons[0].id, title="Line count")
    _create(client, lessons[1].id, title="Elsewhere")

    resp = client.get(f"/v1/lessons/{lessons[0].id}/assignments", headers=auth())
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "enrollment_required"

    _enroll(client, course.id)
    resp = client.get(f"/v1/lessons/{lessons[0].id}/assignments", headers=auth())
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [first["id"], second["id"]]

    owner_view = client.get(f"/v1/lessons/{lessons[1].id}/assignments", headers=OWNER)
    assert [a["title"] for a in owner_view.json()] == ["Elsewhere"]


def test_student_grading_gets_not_authorized_envelope(
    client: TestClient, published_course
) -> None:
    course, lessons = published_course
    assignment = _create(client, lessons[0].id)
    _enroll(client, course.id)
    sid = client.post(
        f"/v1/assignments/{assignment['id']}/submissions",
        json={"content": "x"},
        headers=auth(),
    ).json()["id"]

    resp = client.put(f"/v1/submissions/{sid}/grade", json={"grade": 100}, headers=auth())
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "not_authorized"
    assert "request_id" in resp.json()
