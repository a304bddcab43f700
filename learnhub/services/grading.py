"""Quiz scoring, assignment submissions and instructor grading.

Scoring is a pure function of (quizzes, answers).  Grades are written
with compare-and-set on the submission version; a writer holding a
stale copy gets ConcurrentModification and must re-read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from uuid import UUID

from learnhub.core.clock import now_ts
from learnhub.core.errors import (
    AlreadySubmitted,
    AssignmentClosed,
    ConcurrentModification,
    EmptySubmission,
    GradeOutOfRange,
    NotAuthorized,
    NotFound,
    ServiceError,
    ValidationError,
)
from learnhub.core.metrics import GRADING_OPERATIONS
from learnhub.models.assessment import (
    Assignment,
    Quiz,
    QuizScore,
    Submission,
    SubmissionStats,
)
from learnhub.models.catalog import Course
from learnhub.models.principal import Principal
from learnhub.repos.assessment_repo import AssessmentRepo
from learnhub.repos.submission_repo import SubmissionRepo
from learnhub.services.access import AccessControl, ensure_course_staff, is_course_staff

logger = logging.getLogger(__name__)


def normalize_answer(value: str) -> str:
    return value.strip().lower()


def score(quizzes: list[Quiz], answers: dict[UUID, str]) -> QuizScore:
    """Exact match after trim + lowercase; missing answers are wrong."""
    correct = 0
    earned = 0
    for quiz in quizzes:
        given = answers.get(quiz.id)
        if given is not None and normalize_answer(given) == normalize_answer(quiz.answer):
            correct += 1
            earned += quiz.points
    total = len(quizzes)
    # round half up
    percentage = (200 * correct + total) // (2 * total) if total else 0
    return QuizScore(
        correct_count=correct,
        total=total,
        percentage=percentage,
        points_earned=earned,
        points_possible=sum(q.points for q in quizzes),
    )


def penalized_grade(submission: Submission, assignment: Assignment) -> float | None:
    """Grade as displayed: the late penalty applies at read time only."""
    if submission.grade is None:
        return None
    if submission.is_late and assignment.allow_late_submission:
        return round(submission.grade * (100 - assignment.late_penalty_percent) / 100, 2)
    return submission.grade


@dataclass(frozen=True, slots=True)
class GradeEntry:
    submission_id: UUID
    grade: float
    feedback: str | None = None
    expected_version: int | None = None


@dataclass(slots=True)
class BulkGradeResult:
    graded: list[Submission] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # submission_id -> error kind


class GradingEngine:
    def __init__(
        self,
        access: AccessControl,
        assessments: AssessmentRepo,
        submissions: SubmissionRepo,
    ) -> None:
        self._access = access
        self._assessments = assessments
        self._submissions = submissions

    def assignment(self, assignment_id: UUID) -> Assignment:
        assignment = self._assessments.get_assignment(assignment_id)
        if assignment is None:
            raise NotFound("assignment not found", assignment_id=assignment_id)
        return assignment

    def _course_for(self, assignment: Assignment) -> Course:
        course, _ = self._access.lesson(assignment.lesson_id)
        return course

    # -- quizzes --

    def score_quiz_set(
        self, principal: Principal, quiz_ids: list[UUID], answers: dict[UUID, str]
    ) -> QuizScore:
        quizzes: list[Quiz] = []
        for quiz_id in dict.fromkeys(quiz_ids):
            quiz = self._assessments.get_quiz(quiz_id)
            if quiz is None:
                raise NotFound("quiz not found", quiz_id=quiz_id)
            quizzes.append(quiz)

        for lesson_id in dict.fromkeys(q.lesson_id for q in quizzes):
            self._access.require_lesson_access(principal, lesson_id)

        result = score(quizzes, answers)
        GRADING_OPERATIONS.labels(operation="score", result="ok").inc()
        logger.info(
            "Quiz set scored: user=%s correct=%d total=%d",
            principal.user_id,
            result.correct_count,
            result.total,
        )
        return result

    # -- assignments --

    def submit(
        self,
        principal: Principal,
        assignment_id: UUID,
        content: str | None = None,
        file_ref: str | None = None,
        *,
        now: int | None = None,
    ) -> Submission:
        try:
            submission = self._submit(principal, assignment_id, content, file_ref, now)
        except ServiceError as exc:
            GRADING_OPERATIONS.labels(operation="submit", result=exc.kind).inc()
            logger.warning(
                "Submission rejected: user=%s assignment=%s kind=%s",
                principal.user_id,
                assignment_id,
                exc.kind,
            )
            raise
        GRADING_OPERATIONS.labels(operation="submit", result="ok").inc()
        logger.info(
            "Submission recorded: user=%s assignment=%s attempt=%d late=%s",
            principal.user_id,
            assignment_id,
            submission.attempt_no,
            submission.is_late,
        )
        return submission

    def _submit(
        self,
        principal: Principal,
        assignment_id: UUID,
        content: str | None,
        file_ref: str | None,
        now: int | None,
    ) -> Submission:
        assignment = self.assignment(assignment_id)
        self._access.require_lesson_access(principal, assignment.lesson_id)

        content = content.strip() if content and content.strip() else None
        file_ref = file_ref.strip() if file_ref and file_ref.strip() else None
        if content is None and file_ref is None:
            raise EmptySubmission(
                "content or a file is required",
                errors={"content": "content or file_ref is required"},
            )

        ts = now if now is not None else now_ts()
        is_late = assignment.due_date is not None and ts > assignment.due_date
        if is_late and not assignment.allow_late_submission:
            raise AssignmentClosed(
                "assignment is past due", assignment_id=assignment_id, due_date=assignment.due_date
            )

        previous = self._submissions.list_by_student(assignment_id, principal.user_id)
        if previous and not assignment.allow_resubmission:
            raise AlreadySubmitted("already submitted", assignment_id=assignment_id)

        submission = Submission.new(
            assignment_id=assignment_id,
            student_id=principal.user_id,
            submitted_at=ts,
            is_late=is_late,
            content=content,
            file_ref=file_ref,
            attempt_no=max((s.attempt_no for s in previous), default=0) + 1,
        )
        try:
            self._submissions.add(submission)
        except ValueError:
            # a concurrent submit took the same attempt slot
            raise AlreadySubmitted("already submitted", assignment_id=assignment_id) from None
        return submission

    def grade(
        self,
        principal: Principal,
        submission_id: UUID,
        grade: float,
        feedback: str | None = None,
        *,
        expected_version: int | None = None,
        now: int | None = None,
    ) -> Submission:
        try:
            graded = self._grade(principal, submission_id, grade, feedback, expected_version, now)
        except ServiceError as exc:
            GRADING_OPERATIONS.labels(operation="grade", result=exc.kind).inc()
            logger.warning(
                "Grade rejected: user=%s submission=%s kind=%s",
                principal.user_id,
                submission_id,
                exc.kind,
            )
            raise
        GRADING_OPERATIONS.labels(operation="grade", result="ok").inc()
        logger.info(
            "Submission graded: submission=%s grade=%s by=%s version=%d",
            submission_id,
            graded.grade,
            principal.user_id,
            graded.version,
        )
        return graded

    def _grade(
        self,
        principal: Principal,
        submission_id: UUID,
        grade: float,
        feedback: str | None,
        expected_version: int | None,
        now: int | None,
    ) -> Submission:
        current = self._submissions.get(submission_id)
        if current is None:
            raise NotFound("submission not found", submission_id=submission_id)
        assignment = self.assignment(current.assignment_id)
        ensure_course_staff(principal, self._course_for(assignment))

        if (
            isinstance(grade, bool)
            or not isinstance(grade, (int, float))
            or not 0 <= grade <= assignment.max_points
        ):
            raise GradeOutOfRange(
                "grade out of range",
                errors={"grade": f"must be within 0..{assignment.max_points}"},
                max_points=assignment.max_points,
            )

        if expected_version is not None and expected_version != current.version:
            raise ConcurrentModification(
                "submission was modified",
                submission_id=submission_id,
                expected_version=expected_version,
                current_version=current.version,
            )

        updated = replace(
            current,
            grade=float(grade),
            feedback=feedback,
            graded_by=principal.user_id,
            graded_at=now if now is not None else now_ts(),
            version=current.version + 1,
        )
        if not self._submissions.replace(updated, expected_version=current.version):
            raise ConcurrentModification(
                "submission was modified", submission_id=submission_id
            )
        return updated

    def bulk_grade(
        self, principal: Principal, assignment_id: UUID, entries: list[GradeEntry]
    ) -> BulkGradeResult:
        """Apply each grade independently and report failures per submission."""
        assignment = self.assignment(assignment_id)
        ensure_course_staff(principal, self._course_for(assignment))

        result = BulkGradeResult()
        for entry in entries:
            key = str(entry.submission_id)
            current = self._submissions.get(entry.submission_id)
            if current is None or current.assignment_id != assignment_id:
                result.failed[key] = NotFound.kind
                continue
            try:
                result.graded.append(
                    self.grade(
                        principal,
                        entry.submission_id,
                        entry.grade,
                        entry.feedback,
                        expected_version=entry.expected_version,
                    )
                )
            except (ValidationError, ConcurrentModification, NotAuthorized) as exc:
                result.failed[key] = exc.kind
        logger.info(
            "Bulk grade assignment=%s graded=%d failed=%d",
            assignment_id,
            len(result.graded),
            len(result.failed),
        )
        return result

    # -- reads --

    def get_submission(
        self, principal: Principal, submission_id: UUID
    ) -> tuple[Submission, Assignment]:
        """Readable by its student and by course staff."""
        submission = self._submissions.get(submission_id)
        if submission is None:
            raise NotFound("submission not found", submission_id=submission_id)
        assignment = self.assignment(submission.assignment_id)
        if submission.student_id != principal.user_id:
            ensure_course_staff(principal, self._course_for(assignment))
        return submission, assignment

    def list_submissions(
        self, principal: Principal, assignment_id: UUID
    ) -> tuple[list[Submission], Assignment]:
        """Staff see every submission; anyone else sees only their own attempts."""
        assignment = self.assignment(assignment_id)
        course = self._course_for(assignment)
        if is_course_staff(principal, course):
            return self._submissions.list_by_assignment(assignment_id), assignment
        self._access.require_lesson_access(principal, assignment.lesson_id)
        return self._submissions.list_by_student(assignment_id, principal.user_id), assignment

    def submission_stats(self, principal: Principal, assignment_id: UUID) -> SubmissionStats:
        assignment = self.assignment(assignment_id)
        ensure_course_staff(principal, self._course_for(assignment))

        latest: dict[str, Submission] = {}
        for s in self._submissions.list_by_assignment(assignment_id):
            if s.student_id not in latest or s.attempt_no > latest[s.student_id].attempt_no:
                latest[s.student_id] = s

        grades = [
            g
            for s in latest.values()
            if (g := penalized_grade(s, assignment)) is not None
        ]
        return SubmissionStats(
            total=len(latest),
            graded=len(grades),
            pending=len(latest) - len(grades),
            average_grade=round(sum(grades) / len(grades), 2) if grades else None,
        )
