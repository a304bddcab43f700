"""Enrollment endpoints for the calling user.

The status read is served read-through from the cache; every mutation
here invalidates the caller's (user, course) entry after the ledger
write commits.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from learnhub.api import state
from learnhub.api.dependencies import CurrentUser
from learnhub.models.enrollment import Enrollment
from learnhub.services.cache import cache_service, invalidate, read_through, status_key

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class EnrollIn(BaseModel):
    course_id: UUID


class EnrollmentOut(BaseModel):
    user_id: str
    course_id: str
    status: str
    progress: int
    cycle: int
    enrolled_at: int
    completed_at: int | None = None
    withdrawn_at: int | None = None


class EnrollmentStatusOut(BaseModel):
    is_enrolled: bool
    enrollment: EnrollmentOut | None = None


class LessonRefOut(BaseModel):
    id: str
    title: str


class ProgressReportOut(BaseModel):
    enrollment: EnrollmentOut
    completed_lesson_ids: list[str]
    total_lessons: int
    next_lesson: LessonRefOut | None = None


def enrollment_out(e: Enrollment) -> EnrollmentOut:
    return EnrollmentOut(
        user_id=e.user_id,
        course_id=str(e.course_id),
        status=e.status,
        progress=e.progress,
        cycle=e.cycle,
        enrolled_at=e.enrolled_at,
        completed_at=e.completed_at,
        withdrawn_at=e.withdrawn_at,
    )


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
async def enroll(body: EnrollIn, principal: CurrentUser) -> EnrollmentOut:
    enrollment = await run_in_threadpool(state.ledger.enroll, principal.user_id, body.course_id)
    await invalidate(cache_service, principal.user_id, body.course_id)
    return enrollment_out(enrollment)


@router.delete("/{course_id}", response_model=EnrollmentOut)
async def unenroll(course_id: UUID, principal: CurrentUser) -> EnrollmentOut:
    enrollment = await run_in_threadpool(state.tracker.withdraw, principal.user_id, course_id)
    await invalidate(cache_service, principal.user_id, course_id)
    return enrollment_out(enrollment)


@router.get("/me", response_model=list[EnrollmentOut])
def my_enrollments(
    principal: CurrentUser,
    status_filter: str | None = Query(default=None, alias="status"),
) -> list[EnrollmentOut]:
    return [enrollment_out(e) for e in state.ledger.list_for_user(principal.user_id, status_filter)]


@router.get("/{course_id}/status", response_model=EnrollmentStatusOut)
async def enrollment_status(course_id: UUID, principal: CurrentUser) -> EnrollmentStatusOut:
    async def load() -> dict:
        result = await run_in_threadpool(state.ledger.get_status, principal.user_id, course_id)
        return EnrollmentStatusOut(
            is_enrolled=result.is_enrolled,
            enrollment=enrollment_out(result.enrollment) if result.enrollment else None,
        ).model_dump()

    cached = await read_through(cache_service, status_key(principal.user_id, course_id), load)
    return EnrollmentStatusOut(**cached)


@router.get("/{course_id}/progress", response_model=ProgressReportOut)
def progress_report(course_id: UUID, principal: CurrentUser) -> ProgressReportOut:
    report = state.tracker.progress_report(principal.user_id, course_id)
    return ProgressReportOut(
        enrollment=enrollment_out(report.enrollment),
        completed_lesson_ids=[str(i) for i in report.completed_lesson_ids],
        total_lessons=report.total_lessons,
        next_lesson=(
            LessonRefOut(id=str(report.next_lesson.id), title=report.next_lesson.title)
            if report.next_lesson
            else None
        ),
    )
