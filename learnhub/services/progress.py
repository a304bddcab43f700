"""Progress tracking.

Progress is recomputed from the recorded lesson completions rather than
incremented, so repeating a completion, or re-running recompute after a
crash, converges on the same number:

    progress = floor(100 * |completed ∩ current lessons| / |current lessons|)

A completed enrollment is terminal for its cycle and stays at 100 even if
lessons are later added to the course.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.clock import now_ts
from learnhub.core.errors import (
    EnrollmentCompleted,
    EnrollmentRequired,
    NotEnrolled,
    NotFound,
    ServiceError,
    ValidationError,
)
from learnhub.core.metrics import ENROLLMENT_OPERATIONS, LESSON_COMPLETIONS
from learnhub.models.catalog import Lesson
from learnhub.models.enrollment import Enrollment, LessonCompletion
from learnhub.models.principal import Principal
from learnhub.repos.catalog_repo import CatalogRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo, EnrollmentStore
from learnhub.services.access import AccessControl
from learnhub.services.ledger import EnrollmentLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressReport:
    enrollment: Enrollment
    completed_lesson_ids: list[UUID]  # in course order
    total_lessons: int
    next_lesson: Lesson | None


@dataclass(frozen=True, slots=True)
class AdjacentLessons:
    previous: Lesson | None
    next: Lesson | None


def compute_progress(completed: set[UUID], lessons: list[Lesson]) -> int:
    if not lessons:
        return 0
    done = sum(1 for lesson in lessons if lesson.id in completed)
    return (100 * done) // len(lessons)


class ProgressTracker:
    def __init__(
        self,
        catalog: CatalogRepo,
        enrollments: EnrollmentRepo,
        access: AccessControl,
        ledger: EnrollmentLedger,
    ) -> None:
        self._catalog = catalog
        self._enrollments = enrollments
        self._access = access
        self._ledger = ledger

    def _apply_recompute(
        self, store: EnrollmentStore, enrollment: Enrollment, now: int
    ) -> Enrollment:
        if enrollment.status != "active":
            return enrollment
        lessons = self._catalog.ordered_lessons(enrollment.course_id)
        completed = store.completed_lesson_ids(
            enrollment.user_id, enrollment.course_id, enrollment.cycle
        )
        progress = compute_progress(completed, lessons)
        if progress == enrollment.progress:
            return enrollment
        updated = enrollment.with_progress(progress, now=now)
        store.save(updated)
        return updated

    def record_lesson_complete(
        self,
        principal: Principal,
        course_id: UUID,
        lesson_id: UUID,
        *,
        now: int | None = None,
    ) -> Enrollment:
        """Record that the caller finished a lesson and return the updated enrollment."""
        course, lesson = self._access.lesson_in_course(course_id, lesson_id)
        self._access.decide(principal, course, lesson).raise_if_denied()

        ts = now if now is not None else now_ts()
        user_id = principal.user_id
        with self._enrollments.locked(user_id, course_id) as store:
            enrollment = store.get(user_id, course_id)
            if enrollment is None or not enrollment.is_enrolled:
                logger.warning(
                    "Lesson completion without enrollment: user=%s course=%s",
                    user_id,
                    course_id,
                )
                raise EnrollmentRequired(
                    "enrollment required to record progress",
                    user_id=user_id,
                    course_id=course_id,
                )
            recorded = store.add_completion(
                LessonCompletion(
                    user_id=user_id,
                    course_id=course_id,
                    cycle=enrollment.cycle,
                    lesson_id=lesson_id,
                    completed_at=ts,
                )
            )
            updated = self._apply_recompute(store, enrollment, ts)

        if not recorded:
            LESSON_COMPLETIONS.labels(result="duplicate").inc()
            logger.info(
                "Lesson already completed: user=%s course=%s lesson=%s",
                user_id,
                course_id,
                lesson_id,
            )
            return updated

        LESSON_COMPLETIONS.labels(result="recorded").inc()
        if updated.status == "completed" and enrollment.status != "completed":
            LESSON_COMPLETIONS.labels(result="course_completed").inc()
            logger.info(
                "Course completed: user=%s course=%s",
                user_id,
                course_id,
                extra={"course_id": str(course_id)},
            )
        logger.info(
            "Lesson completed: user=%s course=%s lesson=%s progress=%d",
            user_id,
            course_id,
            lesson_id,
            updated.progress,
            extra={"course_id": str(course_id)},
        )
        return updated

    def withdraw(self, user_id: str, course_id: UUID, *, now: int | None = None) -> Enrollment:
        return self._ledger.unenroll(user_id, course_id, now=now)

    def recompute(self, user_id: str, course_id: UUID, *, now: int | None = None) -> Enrollment:
        """Idempotent: safe to retry, converges for the same completions and lessons."""
        self._access.course(course_id)
        ts = now if now is not None else now_ts()
        with self._enrollments.locked(user_id, course_id) as store:
            enrollment = store.get(user_id, course_id)
            if enrollment is None or not enrollment.is_enrolled:
                raise NotEnrolled("not enrolled", user_id=user_id, course_id=course_id)
            return self._apply_recompute(store, enrollment, ts)

    def set_progress(
        self,
        user_id: str,
        course_id: UUID,
        progress: int,
        *,
        now: int | None = None,
    ) -> Enrollment:
        """Staff override.  100 completes the enrollment; a completed one cannot be lowered."""
        if isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100:
            raise ValidationError(
                "invalid progress", errors={"progress": "must be an integer within 0..100"}
            )
        self._access.course(course_id)
        ts = now if now is not None else now_ts()
        try:
            with self._enrollments.locked(user_id, course_id) as store:
                enrollment = store.get(user_id, course_id)
                if enrollment is None or not enrollment.is_enrolled:
                    raise NotEnrolled("not enrolled", user_id=user_id, course_id=course_id)
                if enrollment.status == "completed" and progress < 100:
                    raise EnrollmentCompleted(
                        "completed enrollments cannot be reopened",
                        user_id=user_id,
                        course_id=course_id,
                        cycle=enrollment.cycle,
                    )
                updated = enrollment.with_progress(progress, now=ts)
                store.save(updated)
        except ServiceError as exc:
            ENROLLMENT_OPERATIONS.labels(operation="set_progress", result=exc.kind).inc()
            raise

        ENROLLMENT_OPERATIONS.labels(operation="set_progress", result="ok").inc()
        logger.info(
            "Progress set: user=%s course=%s progress=%d status=%s",
            user_id,
            course_id,
            updated.progress,
            updated.status,
        )
        return updated

    def progress_report(self, user_id: str, course_id: UUID) -> ProgressReport:
        self._access.course(course_id)
        enrollment = self._enrollments.get(user_id, course_id)
        if enrollment is None or not enrollment.is_enrolled:
            raise NotEnrolled("not enrolled", user_id=user_id, course_id=course_id)
        lessons = self._catalog.ordered_lessons(course_id)
        completed = self._enrollments.completed_lesson_ids(
            user_id, course_id, enrollment.cycle
        )
        done = [lesson.id for lesson in lessons if lesson.id in completed]
        upcoming = next((lesson for lesson in lessons if lesson.id not in completed), None)
        return ProgressReport(
            enrollment=enrollment,
            completed_lesson_ids=done,
            total_lessons=len(lessons),
            next_lesson=upcoming,
        )

    def adjacent_lessons(self, course_id: UUID, lesson_id: UUID) -> AdjacentLessons:
        lessons = self._catalog.ordered_lessons(course_id)
        for i, lesson in enumerate(lessons):
            if lesson.id == lesson_id:
                return AdjacentLessons(
                    previous=lessons[i - 1] if i > 0 else None,
                    next=lessons[i + 1] if i + 1 < len(lessons) else None,
                )
        raise NotFound("lesson not found in course", course_id=course_id, lesson_id=lesson_id)
