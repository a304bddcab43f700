"""Quiz authoring, answer visibility and scoring over HTTP."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import OWNER_ID, auth

OWNER = auth(OWNER_ID, ["instructor"])

_MC = {
    "question": "Which keyword defines a function?",
    "type": "multiple_choice",
    "options": ["def", "func", "lambda"],
    "answer": "def",
}
_TF = {"question": "Python lists are mutable?", "type": "true_false", "answer": "true", "points": 2}


def test_owner_creates_quiz(client: TestClient, published_course) -> None:
    _, lessons = published_course
    resp = client.post(f"/v1/lessons/{lessons[0].id}/quizzes", json=_MC, headers=OWNER)
    assert resp.status_code == 201
    body = resp.json()
    assert body["answer"] == "def"
    assert body["options"] == ["def", "func", "lambda"]


def test_students_cannot_author(client: TestClient, published_course) -> None:
    _, lessons = published_course
    resp = client.post(f"/v1/lessons/{lessons[0].id}/quizzes", json=_MC, headers=auth())
    assert resp.status_code == 403
    error = resp.json()["error"]
    assert (error["kind"], error["message"]) == ("not_authorized", "Insufficient permissions")
    assert error["context"]["required_roles"] == ["admin", "instructor"]


def test_other_instructors_cannot_author(client: TestClient, published_course) -> None:
    _, lessons = published_course
    resp = client.post(
        f"/v1/lessons/{lessons[0].id}/quizzes",
        json=_MC,
        headers=auth("instructor-2", ["instructor"]),
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "not_authorized"


def test_bulk_create_rejects_whole_batch(client: TestClient, published_course) -> None:
    _, lessons = published_course
    bad = dict(_TF, answer="maybe")
    resp = client.post(
        f"/v1/lessons/{lessons[0].id}/quizzes/bulk",
        json={"quizzes": [_MC, bad]},
        headers=OWNER,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["context"]["errors"] == {"1.answer": "must be 'true' or 'false'"}

    listed = client.get(f"/v1/lessons/{lessons[0].id}/quizzes", headers=OWNER).json()
    assert listed == []


def test_answers_hidden_from_students(client: TestClient, published_course) -> None:
    course, lessons = published_course
    client.post(
        f"/v1/lessons/{lessons[0].id}/quizzes/bulk",
        json={"quizzes": [_MC, _TF]},
        headers=OWNER,
    )
    url = f"/v1/lessons/{lessons[0].id}/quizzes"

    assert client.get(url, headers=auth()).status_code == 403
    client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=auth())

    student_view = client.get(url, headers=auth()).json()
    assert [q["answer"] for q in student_view] == [None, None]
    owner_view = client.get(url, headers=OWNER).json()
    assert [q["answer"] for q in owner_view] == ["def", "true"]


def test_score_quiz_set(client: TestClient, published_course) -> None:
    course, lessons = published_course
    created = client.post(
        f"/v1/lessons/{lessons[0].id}/quizzes/bulk",
        json={"quizzes": [_MC, _TF]},
        headers=OWNER,
    ).json()
    client.post("/v1/enrollments", json={"course_id": str(course.id)}, headers=auth())

    mc_id, tf_id = created[0]["id"], created[1]["id"]
    resp = client.post(
        "/v1/quizzes/score",
        json={"quiz_ids": [mc_id, tf_id], "answers": {mc_id: "  DEF "}},
        headers=auth(),
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "correct_count": 1,
        "total": 2,
        "percentage": 50,
        "points_earned": 1,
        "points_possible": 3,
    }


def test_score_requires_at_least_one_quiz(client: TestClient) -> None:
    resp = client.post("/v1/quizzes/score", json={"quiz_ids": [], "answers": {}}, headers=auth())
    assert resp.status_code == 422
