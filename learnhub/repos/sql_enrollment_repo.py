"""SQLAlchemy implementation of EnrollmentRepo."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from learnhub.db.engine import transaction
from learnhub.db.tables import EnrollmentRow, LessonCompletionRow
from learnhub.models.enrollment import Enrollment, LessonCompletion


class _SqlEnrollmentStore:
    """EnrollmentStore bound to one open session/transaction."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str, course_id: UUID) -> Enrollment | None:
        row = self._session.get(EnrollmentRow, (user_id, course_id))
        if row is None:
            return None
        return _row_to_enrollment(row)

    def add(self, enrollment: Enrollment) -> None:
        if self._session.get(EnrollmentRow, (enrollment.user_id, enrollment.course_id)):
            raise ValueError("enrollment already exists")
        row = EnrollmentRow(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrolled_at=enrollment.enrolled_at,
            progress=enrollment.progress,
            status=enrollment.status,
            cycle=enrollment.cycle,
            completed_at=enrollment.completed_at,
            withdrawn_at=enrollment.withdrawn_at,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            # lost a concurrent first-time insert; the transaction is rolled back
            raise ValueError("enrollment already exists") from None

    def save(self, enrollment: Enrollment) -> None:
        row = self._session.get(EnrollmentRow, (enrollment.user_id, enrollment.course_id))
        if row is None:
            raise KeyError("enrollment not found")
        row.enrolled_at = enrollment.enrolled_at
        row.progress = enrollment.progress
        row.status = enrollment.status
        row.cycle = enrollment.cycle
        row.completed_at = enrollment.completed_at
        row.withdrawn_at = enrollment.withdrawn_at
        self._session.flush()

    def add_completion(self, completion: LessonCompletion) -> bool:
        key = (
            completion.user_id,
            completion.course_id,
            completion.cycle,
            completion.lesson_id,
        )
        if self._session.get(LessonCompletionRow, key) is not None:
            return False
        self._session.add(
            LessonCompletionRow(
                user_id=completion.user_id,
                course_id=completion.course_id,
                cycle=completion.cycle,
                lesson_id=completion.lesson_id,
                completed_at=completion.completed_at,
            )
        )
        self._session.flush()
        return True

    def completed_lesson_ids(self, user_id: str, course_id: UUID, cycle: int) -> set[UUID]:
        stmt = select(LessonCompletionRow.lesson_id).where(
            LessonCompletionRow.user_id == user_id,
            LessonCompletionRow.course_id == course_id,
            LessonCompletionRow.cycle == cycle,
        )
        return set(self._session.execute(stmt).scalars())


class SqlEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol.

    Plain calls run in their own short transaction.  `locked()` opens one
    transaction, takes a row lock on the (user, course) enrollment with
    SELECT ... FOR UPDATE, and keeps it until the block exits.  A first-time
    enroll has no row to lock; the primary key then decides the race.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, user_id: str, course_id: UUID) -> Enrollment | None:
        with transaction(self._session_factory) as session:
            return _SqlEnrollmentStore(session).get(user_id, course_id)

    def add(self, enrollment: Enrollment) -> None:
        with transaction(self._session_factory) as session:
            _SqlEnrollmentStore(session).add(enrollment)

    def save(self, enrollment: Enrollment) -> None:
        with transaction(self._session_factory) as session:
            _SqlEnrollmentStore(session).save(enrollment)

    def add_completion(self, completion: LessonCompletion) -> bool:
        with transaction(self._session_factory) as session:
            return _SqlEnrollmentStore(session).add_completion(completion)

    def completed_lesson_ids(self, user_id: str, course_id: UUID, cycle: int) -> set[UUID]:
        with transaction(self._session_factory) as session:
            return _SqlEnrollmentStore(session).completed_lesson_ids(
                user_id, course_id, cycle
            )

    def list_by_course(
        self, course_id: UUID, *, offset: int = 0, limit: int | None = None
    ) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.course_id == course_id)
            .order_by(EnrollmentRow.enrolled_at, EnrollmentRow.user_id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with transaction(self._session_factory) as session:
            return [_row_to_enrollment(r) for r in session.execute(stmt).scalars()]

    def list_by_user(self, user_id: str) -> list[Enrollment]:
        stmt = (
            select(EnrollmentRow)
            .where(EnrollmentRow.user_id == user_id)
            .order_by(EnrollmentRow.enrolled_at)
        )
        with transaction(self._session_factory) as session:
            return [_row_to_enrollment(r) for r in session.execute(stmt).scalars()]

    @contextmanager
    def locked(self, user_id: str, course_id: UUID) -> Iterator[_SqlEnrollmentStore]:
        with transaction(self._session_factory) as session:
            session.execute(
                select(EnrollmentRow)
                .where(
                    EnrollmentRow.user_id == user_id,
                    EnrollmentRow.course_id == course_id,
                )
                .with_for_update()
            )
            yield _SqlEnrollmentStore(session)


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        progress=row.progress,
        status=row.status,
        cycle=row.cycle,
        completed_at=row.completed_at,
        withdrawn_at=row.withdrawn_at,
    )
