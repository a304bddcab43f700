"""SQLAlchemy implementations of AssessmentRepo and SubmissionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from learnhub.db.engine import transaction
from learnhub.db.tables import AssignmentRow, QuizRow, SubmissionRow
from learnhub.models.assessment import Assignment, Quiz, Submission


class SqlAssessmentRepo:
    """Satisfies the AssessmentRepo Protocol."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add_quizzes(self, quizzes: list[Quiz]) -> None:
        if not quizzes:
            return
        with transaction(self._session_factory) as session:
            next_position: dict[UUID, int] = {}
            for q in quizzes:
                if q.lesson_id not in next_position:
                    stmt = select(func.count()).where(QuizRow.lesson_id == q.lesson_id)
                    next_position[q.lesson_id] = session.execute(stmt).scalar_one()
                session.add(
                    QuizRow(
                        id=q.id,
                        lesson_id=q.lesson_id,
                        question=q.question,
                        type=q.type,
                        options=list(q.options) if q.options is not None else None,
                        answer=q.answer,
                        points=q.points,
                        position=next_position[q.lesson_id],
                    )
                )
                next_position[q.lesson_id] += 1

    def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        with transaction(self._session_factory) as session:
            row = session.get(QuizRow, quiz_id)
            return _row_to_quiz(row) if row is not None else None

    def list_quizzes(self, lesson_id: UUID) -> list[Quiz]:
        stmt = (
            select(QuizRow).where(QuizRow.lesson_id == lesson_id).order_by(QuizRow.position)
        )
        with transaction(self._session_factory) as session:
            return [_row_to_quiz(r) for r in session.execute(stmt).scalars()]

    def add_assignment(self, assignment: Assignment) -> None:
        with transaction(self._session_factory) as session:
            session.add(
                AssignmentRow(
                    id=assignment.id,
                    lesson_id=assignment.lesson_id,
                    title=assignment.title,
                    description=assignment.description,
                    max_points=assignment.max_points,
                    due_date=assignment.due_date,
                    allow_late_submission=assignment.allow_late_submission,
                    late_penalty_percent=assignment.late_penalty_percent,
                    allow_resubmission=assignment.allow_resubmission,
                )
            )

    def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        with transaction(self._session_factory) as session:
            row = session.get(AssignmentRow, assignment_id)
            return _row_to_assignment(row) if row is not None else None

    def list_assignments(self, lesson_id: UUID) -> list[Assignment]:
        stmt = select(AssignmentRow).where(AssignmentRow.lesson_id == lesson_id)
        with transaction(self._session_factory) as session:
            return [_row_to_assignment(r) for r in session.execute(stmt).scalars()]


class SqlSubmissionRepo:
    """Satisfies the SubmissionRepo Protocol.

    `replace` is a single UPDATE ... WHERE version = :expected; a zero
    rowcount means another writer got there first.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, submission_id: UUID) -> Submission | None:
        with transaction(self._session_factory) as session:
            row = session.get(SubmissionRow, submission_id)
            return _row_to_submission(row) if row is not None else None

    def add(self, submission: Submission) -> None:
        with transaction(self._session_factory) as session:
            session.add(
                SubmissionRow(
                    id=submission.id,
                    assignment_id=submission.assignment_id,
                    student_id=submission.student_id,
                    attempt_no=submission.attempt_no,
                    content=submission.content,
                    file_ref=submission.file_ref,
                    submitted_at=submission.submitted_at,
                    is_late=submission.is_late,
                    grade=submission.grade,
                    feedback=submission.feedback,
                    graded_by=submission.graded_by,
                    graded_at=submission.graded_at,
                    version=submission.version,
                )
            )
            try:
                session.flush()
            except IntegrityError:
                raise ValueError("attempt already exists") from None

    def replace(self, submission: Submission, *, expected_version: int) -> bool:
        stmt = (
            update(SubmissionRow)
            .where(
                SubmissionRow.id == submission.id,
                SubmissionRow.version == expected_version,
            )
            .values(
                content=submission.content,
                file_ref=submission.file_ref,
                is_late=submission.is_late,
                grade=submission.grade,
                feedback=submission.feedback,
                graded_by=submission.graded_by,
                graded_at=submission.graded_at,
                version=submission.version,
            )
        )
        with transaction(self._session_factory) as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    def list_by_assignment(self, assignment_id: UUID) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.assignment_id == assignment_id)
            .order_by(SubmissionRow.submitted_at, SubmissionRow.attempt_no)
        )
        with transaction(self._session_factory) as session:
            return [_row_to_submission(r) for r in session.execute(stmt).scalars()]

    def list_by_student(self, assignment_id: UUID, student_id: str) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(
                SubmissionRow.assignment_id == assignment_id,
                SubmissionRow.student_id == student_id,
            )
            .order_by(SubmissionRow.attempt_no)
        )
        with transaction(self._session_factory) as session:
            return [_row_to_submission(r) for r in session.execute(stmt).scalars()]


def _row_to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        lesson_id=row.lesson_id,
        question=row.question,
        type=row.type,
        answer=row.answer,
        points=row.points,
        options=tuple(row.options) if row.options is not None else None,
    )


def _row_to_assignment(row: AssignmentRow) -> Assignment:
    return Assignment(
        id=row.id,
        lesson_id=row.lesson_id,
        title=row.title,
        description=row.description,
        max_points=row.max_points,
        due_date=row.due_date,
        allow_late_submission=row.allow_late_submission,
        late_penalty_percent=row.late_penalty_percent,
        allow_resubmission=row.allow_resubmission,
    )


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        assignment_id=row.assignment_id,
        student_id=row.student_id,
        submitted_at=row.submitted_at,
        is_late=row.is_late,
        content=row.content,
        file_ref=row.file_ref,
        attempt_no=row.attempt_no,
        grade=row.grade,
        feedback=row.feedback,
        graded_by=row.graded_by,
        graded_at=row.graded_at,
        version=row.version,
    )
