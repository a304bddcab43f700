"""Course catalog entities.

Owned by the catalog service; read-only from this core's point of view.
Lesson order within a course is (module.position, lesson.position).
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

COURSE_STATES = ("draft", "published")


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    slug: str
    title: str
    owner_id: str
    status: str = "draft"  # draft|published

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @staticmethod
    def new(*, slug: str, title: str, owner_id: str, status: str = "draft") -> Course:
        return Course(id=uuid4(), slug=slug, title=title, owner_id=owner_id, status=status)


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: UUID
    course_id: UUID
    position: int
    title: str

    @staticmethod
    def new(*, course_id: UUID, position: int, title: str) -> CourseModule:
        return CourseModule(id=uuid4(), course_id=course_id, position=position, title=title)


@dataclass(frozen=True, slots=True)
class Lesson:
    id: UUID
    course_id: UUID
    module_id: UUID
    position: int
    title: str
    video_url: str | None = None
    content: str | None = None

    @staticmethod
    def new(
        *,
        course_id: UUID,
        module_id: UUID,
        position: int,
        title: str,
        video_url: str | None = None,
        content: str | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            course_id=course_id,
            module_id=module_id,
            position=position,
            title=title,
            video_url=video_url,
            content=content,
        )
