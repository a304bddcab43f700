"""Enrollment ledger: the authoritative record of who is enrolled where.

Mutations for one (user, course) pair run under the repository's
per-key lock, so a concurrent enroll and progress update cannot
interleave into a lost update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from learnhub.core.clock import now_ts
from learnhub.core.errors import (
    AlreadyEnrolled,
    CourseUnavailable,
    NotEnrolled,
    NotFound,
    ServiceError,
    ValidationError,
)
from learnhub.core.metrics import ENROLLMENT_OPERATIONS
from learnhub.models.catalog import Course
from learnhub.models.enrollment import (
    ENROLLMENT_STATES,
    Enrollment,
    EnrollmentStats,
    EnrollmentStatus,
)
from learnhub.repos.catalog_repo import CatalogRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Pagination:
    offset: int = 0
    limit: int = 50

    def __post_init__(self) -> None:
        errors = {}
        if self.offset < 0:
            errors["offset"] = "must be >= 0"
        if self.limit < 1:
            errors["limit"] = "must be >= 1"
        if errors:
            raise ValidationError("invalid pagination", errors=errors)


@dataclass(slots=True)
class BulkEnrollResult:
    enrolled: list[Enrollment] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # user_id -> error kind


class EnrollmentLedger:
    def __init__(self, catalog: CatalogRepo, enrollments: EnrollmentRepo) -> None:
        self._catalog = catalog
        self._enrollments = enrollments

    def _course(self, course_id: UUID) -> Course:
        course = self._catalog.get_course(course_id)
        if course is None:
            raise NotFound("course not found", course_id=course_id)
        return course

    def enroll(self, user_id: str, course_id: UUID, *, now: int | None = None) -> Enrollment:
        """Create an active(0) enrollment, or a fresh cycle after withdrawal.

        Repeating the call while enrolled fails with AlreadyEnrolled.
        """
        try:
            course = self._course(course_id)
            if not course.is_published and user_id != course.owner_id:
                raise CourseUnavailable("course is not published", course_id=course_id)

            ts = now if now is not None else now_ts()
            with self._enrollments.locked(user_id, course_id) as store:
                existing = store.get(user_id, course_id)
                if existing is not None and existing.is_enrolled:
                    raise AlreadyEnrolled(
                        "already enrolled", user_id=user_id, course_id=course_id
                    )
                if existing is None:
                    enrollment = Enrollment.new(
                        user_id=user_id, course_id=course_id, enrolled_at=ts
                    )
                    try:
                        store.add(enrollment)
                    except ValueError:
                        raise AlreadyEnrolled(
                            "already enrolled", user_id=user_id, course_id=course_id
                        ) from None
                else:
                    enrollment = existing.restarted(enrolled_at=ts)
                    store.save(enrollment)
        except ServiceError as exc:
            ENROLLMENT_OPERATIONS.labels(operation="enroll", result=exc.kind).inc()
            logger.warning(
                "Enroll rejected: user=%s course=%s kind=%s",
                user_id,
                course_id,
                exc.kind,
                extra={"course_id": str(course_id)},
            )
            raise

        ENROLLMENT_OPERATIONS.labels(operation="enroll", result="ok").inc()
        logger.info(
            "Enrolled user=%s course=%s cycle=%d",
            user_id,
            course_id,
            enrollment.cycle,
            extra={"course_id": str(course_id)},
        )
        return enrollment

    def unenroll(self, user_id: str, course_id: UUID, *, now: int | None = None) -> Enrollment:
        """Mark the enrollment withdrawn.  The row is kept for grading history."""
        ts = now if now is not None else now_ts()
        try:
            with self._enrollments.locked(user_id, course_id) as store:
                existing = store.get(user_id, course_id)
                if existing is None or not existing.is_enrolled:
                    raise NotEnrolled("not enrolled", user_id=user_id, course_id=course_id)
                withdrawn = existing.withdrawn(now=ts)
                store.save(withdrawn)
        except ServiceError as exc:
            ENROLLMENT_OPERATIONS.labels(operation="unenroll", result=exc.kind).inc()
            logger.warning(
                "Unenroll rejected: user=%s course=%s kind=%s",
                user_id,
                course_id,
                exc.kind,
                extra={"course_id": str(course_id)},
            )
            raise

        ENROLLMENT_OPERATIONS.labels(operation="unenroll", result="ok").inc()
        logger.info(
            "Withdrew user=%s course=%s",
            user_id,
            course_id,
            extra={"course_id": str(course_id)},
        )
        return withdrawn

    def get_status(self, user_id: str, course_id: UUID) -> EnrollmentStatus:
        enrollment = self._enrollments.get(user_id, course_id)
        if enrollment is None or not enrollment.is_enrolled:
            return EnrollmentStatus(is_enrolled=False, enrollment=enrollment)
        return EnrollmentStatus(is_enrolled=True, enrollment=enrollment)

    def list_for_course(
        self, course_id: UUID, pagination: Pagination | None = None
    ) -> list[Enrollment]:
        page = pagination or Pagination()
        self._course(course_id)
        return self._enrollments.list_by_course(
            course_id, offset=page.offset, limit=page.limit
        )

    def list_for_user(self, user_id: str, status: str | None = None) -> list[Enrollment]:
        if status is not None and status not in ENROLLMENT_STATES:
            raise ValidationError(
                "invalid status filter",
                errors={"status": f"must be one of {', '.join(ENROLLMENT_STATES)}"},
            )
        rows = self._enrollments.list_by_user(user_id)
        if status is None:
            return rows
        return [e for e in rows if e.status == status]

    def bulk_enroll(
        self, user_ids: list[str], course_id: UUID, *, now: int | None = None
    ) -> BulkEnrollResult:
        """Enroll each user independently; one failure does not stop the rest."""
        self._course(course_id)
        result = BulkEnrollResult()
        for user_id in dict.fromkeys(user_ids):
            try:
                result.enrolled.append(self.enroll(user_id, course_id, now=now))
            except (AlreadyEnrolled, CourseUnavailable) as exc:
                result.failed[user_id] = exc.kind
        logger.info(
            "Bulk enroll course=%s enrolled=%d failed=%d",
            course_id,
            len(result.enrolled),
            len(result.failed),
            extra={"course_id": str(course_id)},
        )
        return result

    def course_stats(self, course_id: UUID) -> EnrollmentStats:
        self._course(course_id)
        rows = self._enrollments.list_by_course(course_id)
        counts = {state: 0 for state in ENROLLMENT_STATES}
        for e in rows:
            counts[e.status] += 1
        current = [e.progress for e in rows if e.is_enrolled]
        average = round(sum(current) / len(current), 2) if current else 0.0
        return EnrollmentStats(
            total=len(rows),
            active=counts["active"],
            completed=counts["completed"],
            withdrawn=counts["withdrawn"],
            average_progress=average,
        )
