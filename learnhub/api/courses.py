"""Course listing and staff-facing roster endpoints."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from learnhub.api import state
from learnhub.api.dependencies import Admin, CurrentUser, Staff
from learnhub.api.enrollments import EnrollmentOut, enrollment_out
from learnhub.core.config import SETTINGS
from learnhub.core.errors import CourseUnavailable
from learnhub.services.access import ensure_course_staff, is_course_staff
from learnhub.services.cache import cache_service, invalidate
from learnhub.services.ledger import Pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseOut(BaseModel):
    id: str
    slug: str
    title: str
    owner_id: str
    status: str


class LessonOutlineOut(BaseModel):
    id: str
    module_id: str
    title: str
    has_video: bool


class EnrollmentStatsOut(BaseModel):
    total: int
    active: int
    completed: int
    withdrawn: int
    average_progress: float


class BulkEnrollIn(BaseModel):
    user_ids: list[str]


class BulkEnrollOut(BaseModel):
    enrolled: list[EnrollmentOut]
    failed: dict[str, str]


class ProgressIn(BaseModel):
    progress: int


@router.get("", response_model=list[CourseOut])
def list_courses(principal: CurrentUser) -> list[CourseOut]:
    """Published courses plus any draft the caller owns (admins see all)."""
    return [
        CourseOut(
            id=str(c.id),
            slug=c.slug,
            title=c.title,
            owner_id=c.owner_id,
            status=c.status,
        )
        for c in state.catalog_repo.list_courses()
        if c.is_published or is_course_staff(principal, c)
    ]


@router.get("/{course_id}/lessons", response_model=list[LessonOutlineOut])
def course_outline(course_id: UUID, principal: CurrentUser) -> list[LessonOutlineOut]:
    """Lesson titles in course order.  Content itself is gated per lesson."""
    course = state.access_control.course(course_id)
    if not course.is_published and not is_course_staff(principal, course):
        raise CourseUnavailable("course is not published", course_id=course_id)
    return [
        LessonOutlineOut(
            id=str(lesson.id),
            module_id=str(lesson.module_id),
            title=lesson.title,
            has_video=lesson.video_url is not None,
        )
        for lesson in state.catalog_repo.ordered_lessons(course_id)
    ]


@router.get("/{course_id}/enrollments", response_model=list[EnrollmentOut])
def course_roster(
    course_id: UUID,
    principal: Staff,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=SETTINGS.page_size_max)] = 50,
) -> list[EnrollmentOut]:
    ensure_course_staff(principal, state.access_control.course(course_id))
    rows = state.ledger.list_for_course(course_id, Pagination(offset=offset, limit=limit))
    return [enrollment_out(e) for e in rows]


@router.get("/{course_id}/enrollments/stats", response_model=EnrollmentStatsOut)
def course_enrollment_stats(course_id: UUID, principal: Staff) -> EnrollmentStatsOut:
    ensure_course_staff(principal, state.access_control.course(course_id))
    stats = state.ledger.course_stats(course_id)
    return EnrollmentStatsOut(
        total=stats.total,
        active=stats.active,
        completed=stats.completed,
        withdrawn=stats.withdrawn,
        average_progress=stats.average_progress,
    )


@router.post("/{course_id}/enrollments/bulk", response_model=BulkEnrollOut)
async def bulk_enroll(course_id: UUID, body: BulkEnrollIn, principal: Admin) -> BulkEnrollOut:
    try:
        result = await run_in_threadpool(state.ledger.bulk_enroll, body.user_ids, course_id)
    finally:
        # a storage failure part way through leaves the earlier users enrolled
        for user_id in dict.fromkeys(body.user_ids):
            await invalidate(cache_service, user_id, course_id)
    logger.info(
        "Bulk enroll by admin=%s course=%s requested=%d",
        principal.user_id,
        course_id,
        len(body.user_ids),
    )
    return BulkEnrollOut(
        enrolled=[enrollment_out(e) for e in result.enrolled],
        failed=result.failed,
    )


@router.put("/{course_id}/enrollments/{user_id}/progress", response_model=EnrollmentOut)
async def override_progress(
    course_id: UUID, user_id: str, body: ProgressIn, principal: Staff
) -> EnrollmentOut:
    course = await run_in_threadpool(state.access_control.course, course_id)
    ensure_course_staff(principal, course)
    enrollment = await run_in_threadpool(
        state.tracker.set_progress, user_id, course_id, body.progress
    )
    await invalidate(cache_service, user_id, course_id)
    return enrollment_out(enrollment)
