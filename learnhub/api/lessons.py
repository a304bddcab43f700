"""Gated lesson endpoints: access check, content, completion."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from learnhub.api import state
from learnhub.api.dependencies import CurrentUser
from learnhub.api.enrollments import EnrollmentOut, LessonRefOut, enrollment_out
from learnhub.services.cache import cache_service, invalidate

router = APIRouter(prefix="/v1/courses/{course_id}/lessons", tags=["lessons"])


class AccessOut(BaseModel):
    allowed: bool
    reason: str


class LessonOut(BaseModel):
    id: str
    course_id: str
    module_id: str
    title: str
    video_url: str | None = None
    content: str | None = None
    previous: LessonRefOut | None = None
    next: LessonRefOut | None = None


@router.get("/{lesson_id}/access", response_model=AccessOut)
def lesson_access(course_id: UUID, lesson_id: UUID, principal: CurrentUser) -> AccessOut:
    decision = state.access_control.can_access_lesson(principal, course_id, lesson_id)
    return AccessOut(allowed=decision.allowed, reason=decision.reason)


@router.get("/{lesson_id}", response_model=LessonOut)
def get_lesson(course_id: UUID, lesson_id: UUID, principal: CurrentUser) -> LessonOut:
    course, lesson = state.access_control.lesson_in_course(course_id, lesson_id)
    state.access_control.decide(principal, course, lesson).raise_if_denied()
    adjacent = state.tracker.adjacent_lessons(course_id, lesson_id)
    return LessonOut(
        id=str(lesson.id),
        course_id=str(lesson.course_id),
        module_id=str(lesson.module_id),
        title=lesson.title,
        video_url=lesson.video_url,
        content=lesson.content,
        previous=(
            LessonRefOut(id=str(adjacent.previous.id), title=adjacent.previous.title)
            if adjacent.previous
            else None
        ),
        next=(
            LessonRefOut(id=str(adjacent.next.id), title=adjacent.next.title)
            if adjacent.next
            else None
        ),
    )


@router.post("/{lesson_id}/complete", response_model=EnrollmentOut)
async def complete_lesson(
    course_id: UUID, lesson_id: UUID, principal: CurrentUser
) -> EnrollmentOut:
    enrollment = await run_in_threadpool(
        state.tracker.record_lesson_complete, principal, course_id, lesson_id
    )
    await invalidate(cache_service, principal.user_id, course_id)
    return enrollment_out(enrollment)
