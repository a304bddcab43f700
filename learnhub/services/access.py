"""Access control for lesson content.

Every call that returns lesson content, quiz questions or assignment
details, or that accepts work against them, goes through here.  The
client never supplies an enrollment flag; the decision is made against
the ledger on each call.

Rules, first match wins:
  1. admin or course owner            -> allow
  2. course not published             -> deny(course_unavailable)
  3. no non-withdrawn enrollment      -> deny(enrollment_required)
  4. otherwise                        -> allow

A storage failure while looking up the enrollment is not a decision: it
propagates as ServiceUnavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import (
    CourseUnavailable,
    EnrollmentRequired,
    NotAuthorized,
    NotFound,
)
from learnhub.core.metrics import ACCESS_DECISIONS
from learnhub.models.catalog import Course, Lesson
from learnhub.models.enrollment import Enrollment
from learnhub.models.principal import Principal
from learnhub.repos.catalog_repo import CatalogRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo

logger = logging.getLogger(__name__)

DENY_COURSE_UNAVAILABLE = "course_unavailable"
DENY_ENROLLMENT_REQUIRED = "enrollment_required"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str  # allow: admin|owner|enrolled ; deny: course_unavailable|enrollment_required

    def raise_if_denied(self) -> None:
        if self.allowed:
            return
        if self.reason == DENY_COURSE_UNAVAILABLE:
            raise CourseUnavailable("course is not published")
        raise EnrollmentRequired("enrollment required to access this lesson")


def is_course_staff(principal: Principal, course: Course) -> bool:
    return principal.is_platform_admin() or principal.user_id == course.owner_id


def ensure_course_staff(principal: Principal, course: Course) -> None:
    """Raise NotAuthorized unless the caller is an admin or the course owner."""
    if not is_course_staff(principal, course):
        logger.warning(
            "Not authorized: user=%s is not staff of course=%s",
            principal.user_id,
            course.id,
        )
        raise NotAuthorized(
            "only the course owner or an admin may do this",
            course_id=course.id,
        )


def evaluate_lesson_access(
    principal: Principal,
    course: Course,
    lesson: Lesson,
    enrollment: Enrollment | None,
) -> AccessDecision:
    """Pure decision over already-loaded inputs."""
    if principal.is_platform_admin():
        return AccessDecision(True, "admin")
    if principal.user_id == course.owner_id:
        return AccessDecision(True, "owner")
    if not course.is_published:
        return AccessDecision(False, DENY_COURSE_UNAVAILABLE)
    if enrollment is None or not enrollment.is_enrolled:
        return AccessDecision(False, DENY_ENROLLMENT_REQUIRED)
    return AccessDecision(True, "enrolled")


class AccessControl:
    def __init__(self, catalog: CatalogRepo, enrollments: EnrollmentRepo) -> None:
        self._catalog = catalog
        self._enrollments = enrollments

    def course(self, course_id: UUID) -> Course:
        course = self._catalog.get_course(course_id)
        if course is None:
            raise NotFound("course not found", course_id=course_id)
        return course

    def lesson_in_course(self, course_id: UUID, lesson_id: UUID) -> tuple[Course, Lesson]:
        course = self.course(course_id)
        lesson = self._catalog.get_lesson(lesson_id)
        if lesson is None or lesson.course_id != course.id:
            raise NotFound("lesson not found in course", course_id=course_id, lesson_id=lesson_id)
        return course, lesson

    def lesson(self, lesson_id: UUID) -> tuple[Course, Lesson]:
        lesson = self._catalog.get_lesson(lesson_id)
        if lesson is None:
            raise NotFound("lesson not found", lesson_id=lesson_id)
        return self.course(lesson.course_id), lesson

    def decide(self, principal: Principal, course: Course, lesson: Lesson) -> AccessDecision:
        enrollment = None
        if not is_course_staff(principal, course):
            enrollment = self._enrollments.get(principal.user_id, course.id)
        decision = evaluate_lesson_access(principal, course, lesson, enrollment)

        ACCESS_DECISIONS.labels(
            decision="allow" if decision.allowed else "deny",
            reason=decision.reason,
        ).inc()
        if not decision.allowed:
            logger.warning(
                "Lesson access denied: user=%s course=%s lesson=%s reason=%s",
                principal.user_id,
                course.id,
                lesson.id,
                decision.reason,
                extra={"course_id": str(course.id)},
            )
        return decision

    def can_access_lesson(
        self, principal: Principal, course_id: UUID, lesson_id: UUID
    ) -> AccessDecision:
        course, lesson = self.lesson_in_course(course_id, lesson_id)
        return self.decide(principal, course, lesson)

    def require_lesson_access(
        self, principal: Principal, lesson_id: UUID
    ) -> tuple[Course, Lesson]:
        """Resolve the lesson and raise on denial.  Returns (course, lesson)."""
        course, lesson = self.lesson(lesson_id)
        self.decide(principal, course, lesson).raise_if_denied()
        return course, lesson
