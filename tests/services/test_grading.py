from __future__ import annotations

from uuid import uuid4

import pytest

from learnhub.core.errors import (
    AlreadySubmitted,
    AssignmentClosed,
    ConcurrentModification,
    EmptySubmission,
    EnrollmentRequired,
    GradeOutOfRange,
    NotAuthorized,
    NotFound,
)
from learnhub.models.assessment import Assignment, Quiz
from learnhub.models.catalog import Course
from learnhub.models.principal import Principal
from learnhub.services.authoring import AssignmentDraft, QuizDraft
from learnhub.services.grading import GradeEntry, penalized_grade, score
from tests.conftest import OWNER_ID, Core, seed_course

OWNER = Principal(user_id=OWNER_ID, roles=frozenset({"instructor"}))
STUDENT = Principal(user_id="u1", roles=frozenset({"student"}))
DUE = 1_000


def _quiz(answer: str, type: str = "text", points: int = 1) -> Quiz:
    return Quiz.new(lesson_id=uuid4(), question="q" * 10, type=type, answer=answer, points=points)


# --- scoring ---


def test_score_is_case_and_whitespace_insensitive() -> None:
    q = _quiz("b")
    assert score([q], {q.id: " B "}).correct_count == 1
    assert score([q], {q.id: "c"}).correct_count == 0


def test_score_rounds_half_up_and_counts_points() -> None:
    quizzes = [_quiz("a", points=2), _quiz("b"), _quiz("c"), _quiz("d"), _quiz("e"), _quiz("f"),
               _quiz("g"), _quiz("h")]
    answers = {quizzes[0].id: "a", quizzes[1].id: "b", quizzes[2].id: "c"}
    result = score(quizzes, answers)
    # 3/8 = 37.5% -> 38
    assert (result.correct_count, result.total, result.percentage) == (3, 8, 38)
    assert (result.points_earned, result.points_possible) == (4, 9)


def test_score_empty_set_is_zero() -> None:
    result = score([], {})
    assert (result.correct_count, result.total, result.percentage) == (0, 0, 0)


def test_score_is_deterministic() -> None:
    quizzes = [_quiz("x"), _quiz("y")]
    answers = {quizzes[0].id: "X"}
    assert score(quizzes, answers) == score(quizzes, answers)


def test_score_quiz_set_requires_access_and_known_ids(core: Core) -> None:
    course, lessons = seed_course(core.catalog)
    quiz = core.authoring.create_quiz(
        OWNER,
        lessons[0].id,
        QuizDraft(
            question="Which letter is second?",
            type="multiple_choice",
            options=["a", "b", "c"],
            answer="b",
        ),
    )
    with pytest.raises(EnrollmentRequired):
        core.grading.score_quiz_set(STUDENT, [quiz.id], {quiz.id: "B"})

    core.ledger.enroll("u1", course.id)
    result = core.grading.score_quiz_set(STUDENT, [quiz.id, quiz.id], {quiz.id: "B"})
    assert (result.correct_count, result.total, result.percentage) == (1, 1, 100)

    with pytest.raises(NotFound):
        core.grading.score_quiz_set(STUDENT, [uuid4()], {})


# --- submissions ---


def _assignment(core: Core, **overrides) -> tuple[Assignment, Course]:
    course, lessons = seed_course(core.catalog)
    fields = {"title": "Word count", "description": "Count words.", "due_date": DUE}
    fields.update(overrides)
    assignment = core.authoring.create_assignment(OWNER, lessons[0].id, AssignmentDraft(**fields))
    core.ledger.enroll("u1", course.id)
    return assignment, course


def test_submit_on_time(core: Core) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="hello", now=DUE)
    assert (s.is_late, s.grade, s.attempt_no, s.version) == (False, None, 1, 1)


def test_empty_submission_is_rejected(core: Core) -> None:
    a, _ = _assignment(core)
    with pytest.raises(EmptySubmission):
        core.grading.submit(STUDENT, a.id, content="   ", file_ref="")


def test_late_submission_rejected_when_disallowed(core: Core) -> None:
    a, _ = _assignment(core, allow_late_submission=False)
    with pytest.raises(AssignmentClosed):
        core.grading.submit(STUDENT, a.id, content="x", now=DUE + 1)


def test_second_submission_rejected_by_default(core: Core) -> None:
    a, _ = _assignment(core)
    core.grading.submit(STUDENT, a.id, content="x", now=1)
    with pytest.raises(AlreadySubmitted):
        core.grading.submit(STUDENT, a.id, content="y", now=2)


def test_resubmission_appends_attempts(core: Core) -> None:
    a, _ = _assignment(core, allow_resubmission=True)
    core.grading.submit(STUDENT, a.id, content="x", now=1)
    second = core.grading.submit(STUDENT, a.id, file_ref="s3://bucket/y.py", now=2)
    assert second.attempt_no == 2
    assert second.content is None


def test_unenrolled_student_cannot_submit(core: Core) -> None:
    a, course = _assignment(core)
    core.ledger.unenroll("u1", course.id)
    with pytest.raises(EnrollmentRequired):
        core.grading.submit(STUDENT, a.id, content="x")


# --- grading ---


def test_late_assignment_scenario_displays_penalized_grade(core: Core) -> None:
    a, _ = _assignment(core, late_penalty_percent=10)
    s = core.grading.submit(STUDENT, a.id, content="late work", now=DUE + 60)
    assert s.is_late is True

    graded = core.grading.grade(OWNER, s.id, 90, "good")
    assert graded.grade == 90
    assert penalized_grade(graded, a) == 81
    assert (graded.graded_by, graded.version) == (OWNER_ID, 2)


@pytest.mark.parametrize("value", [-1, 100.5, 101, 1_000])
def test_grade_out_of_range(core: Core, value: float) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="x")
    with pytest.raises(GradeOutOfRange):
        core.grading.grade(OWNER, s.id, value)


def test_grade_bounds_are_inclusive(core: Core) -> None:
    a, _ = _assignment(core, allow_resubmission=True)
    s1 = core.grading.submit(STUDENT, a.id, content="x")
    s2 = core.grading.submit(STUDENT, a.id, content="y")
    assert core.grading.grade(OWNER, s1.id, 0).grade == 0
    assert core.grading.grade(OWNER, s2.id, 100).grade == 100


def test_student_cannot_grade(core: Core) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="x")
    with pytest.raises(NotAuthorized):
        core.grading.grade(STUDENT, s.id, 50)
    with pytest.raises(NotAuthorized):
        core.grading.grade(Principal(user_id="x", roles=frozenset({"instructor"})), s.id, 50)


def test_staff_check_precedes_range_check(core: Core) -> None:
    a, _ = _assignment(core, max_points=50)
    s = core.grading.submit(STUDENT, a.id, content="x")
    outsider = Principal(user_id="x", roles=frozenset({"instructor"}))
    with pytest.raises(NotAuthorized) as exc_info:
        core.grading.grade(outsider, s.id, 999)
    assert "max_points" not in exc_info.value.context


def test_stale_expected_version_is_rejected(core: Core) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="x")
    core.grading.grade(OWNER, s.id, 70, expected_version=1)
    with pytest.raises(ConcurrentModification):
        core.grading.grade(OWNER, s.id, 75, expected_version=1)
    assert core.submissions.get(s.id).grade == 70


def test_lost_compare_and_set_is_reported(core: Core, monkeypatch: pytest.MonkeyPatch) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="x")
    monkeypatch.setattr(core.submissions, "replace", lambda sub, expected_version: False)
    with pytest.raises(ConcurrentModification):
        core.grading.grade(OWNER, s.id, 70)


def test_bulk_grade_reports_per_submission(core: Core) -> None:
    a, course = _assignment(core)
    core.ledger.enroll("u2", course.id)
    s1 = core.grading.submit(STUDENT, a.id, content="x")
    s2 = core.grading.submit(Principal(user_id="u2", roles=frozenset({"student"})), a.id, content="y")
    missing = uuid4()

    result = core.grading.bulk_grade(
        OWNER,
        a.id,
        [
            GradeEntry(submission_id=s1.id, grade=80),
            GradeEntry(submission_id=s2.id, grade=500),
            GradeEntry(submission_id=missing, grade=10),
        ],
    )
    assert [s.id for s in result.graded] == [s1.id]
    assert result.failed == {str(s2.id): "grade_out_of_range", str(missing): "not_found"}


def test_submission_stats_use_latest_attempt(core: Core) -> None:
    a, course = _assignment(core, allow_resubmission=True)
    core.ledger.enroll("u2", course.id)
    first = core.grading.submit(STUDENT, a.id, content="x", now=1)
    core.grading.grade(OWNER, first.id, 40)
    latest = core.grading.submit(STUDENT, a.id, content="x2", now=2)
    core.grading.grade(OWNER, latest.id, 80)
    core.grading.submit(Principal(user_id="u2", roles=frozenset({"student"})), a.id, content="y")

    stats = core.grading.submission_stats(OWNER, a.id)
    assert (stats.total, stats.graded, stats.pending, stats.average_grade) == (2, 1, 1, 80.0)


def test_students_only_list_their_own_submissions(core: Core) -> None:
    a, course = _assignment(core)
    core.ledger.enroll("u2", course.id)
    core.grading.submit(STUDENT, a.id, content="x")
    core.grading.submit(Principal(user_id="u2", roles=frozenset({"student"})), a.id, content="y")

    mine, _ = core.grading.list_submissions(STUDENT, a.id)
    assert [s.student_id for s in mine] == ["u1"]
    everyone, _ = core.grading.list_submissions(OWNER, a.id)
    assert sorted(s.student_id for s in everyone) == ["u1", "u2"]


def test_other_student_cannot_read_submission(core: Core) -> None:
    a, _ = _assignment(core)
    s = core.grading.submit(STUDENT, a.id, content="x")
    with pytest.raises(NotAuthorized):
        core.grading.get_submission(Principal(user_id="u2", roles=frozenset({"student"})), s.id)
    submission, _ = core.grading.get_submission(STUDENT, s.id)
    assert submission.id == s.id
