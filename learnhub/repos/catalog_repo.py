from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learnhub.models.catalog import COURSE_STATES, Course, CourseModule, Lesson


class CatalogRepo(Protocol):
    def get_course(self, course_id: UUID) -> Course | None: ...
    def list_courses(self) -> list[Course]: ...
    def get_lesson(self, lesson_id: UUID) -> Lesson | None: ...
    def ordered_lessons(self, course_id: UUID) -> list[Lesson]: ...


class InMemoryCatalogRepo:
    """Local stand-in for the catalog service.

    The add_* and set_course_status methods exist for seeding and tests;
    the core only uses the CatalogRepo read methods.
    """

    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._lessons: dict[UUID, Lesson] = {}

    def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    def list_courses(self) -> list[Course]:
        return list(self._courses.values())

    def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self._lessons.get(lesson_id)

    def ordered_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons = [l for l in self._lessons.values() if l.course_id == course_id]
        return sorted(
            lessons, key=lambda l: (self._modules[l.module_id].position, l.position)
        )

    def add_course(self, course: Course) -> None:
        if any(c.slug == course.slug for c in self._courses.values()):
            raise ValueError("slug already exists")
        self._courses[course.id] = course

    def set_course_status(self, course_id: UUID, status: str) -> Course:
        if status not in COURSE_STATES:
            raise ValueError(f"unknown course status {status!r}")
        course = self._courses.get(course_id)
        if course is None:
            raise KeyError("course not found")
        updated = replace(course, status=status)
        self._courses[course_id] = updated
        return updated

    def add_module(self, module: CourseModule) -> None:
        if module.course_id not in self._courses:
            raise KeyError("course not found")
        for m in self._modules.values():
            if m.course_id == module.course_id and m.position == module.position:
                raise ValueError("module position already taken")
        self._modules[module.id] = module

    def add_lesson(self, lesson: Lesson) -> None:
        module = self._modules.get(lesson.module_id)
        if module is None or module.course_id != lesson.course_id:
            raise KeyError("module not found in course")
        for l in self._lessons.values():
            if l.module_id == lesson.module_id and l.position == lesson.position:
                raise ValueError("lesson position already taken")
        self._lessons[lesson.id] = lesson

    def clear(self) -> None:
        self._courses.clear()
        self._modules.clear()
        self._lessons.clear()
