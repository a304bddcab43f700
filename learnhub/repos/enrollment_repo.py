from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol
from uuid import UUID

from learnhub.models.enrollment import Enrollment, LessonCompletion


class EnrollmentStore(Protocol):
    """Reads and writes available inside and outside a lock."""

    def get(self, user_id: str, course_id: UUID) -> Enrollment | None: ...
    def add(self, enrollment: Enrollment) -> None: ...
    def save(self, enrollment: Enrollment) -> None: ...
    def add_completion(self, completion: LessonCompletion) -> bool: ...
    def completed_lesson_ids(
        self, user_id: str, course_id: UUID, cycle: int
    ) -> set[UUID]: ...


class EnrollmentRepo(EnrollmentStore, Protocol):
    def list_by_course(
        self, course_id: UUID, *, offset: int = 0, limit: int | None = None
    ) -> list[Enrollment]: ...
    def list_by_user(self, user_id: str) -> list[Enrollment]: ...
    def locked(
        self, user_id: str, course_id: UUID
    ) -> AbstractContextManager[EnrollmentStore]:
        """Serialize mutations for one (user, course) pair.

        Everything done through the yielded store is atomic with respect
        to other holders of the same key.
        """
        ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, UUID], Enrollment] = {}
        self._completions: dict[tuple[str, UUID, int], dict[UUID, LessonCompletion]] = {}
        self._locks: dict[tuple[str, UUID], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def get(self, user_id: str, course_id: UUID) -> Enrollment | None:
        return self._store.get((user_id, course_id))

    def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._store:
            raise ValueError("enrollment already exists")
        self._store[key] = enrollment

    def save(self, enrollment: Enrollment) -> None:
        key = (enrollment.user_id, enrollment.course_id)
        if key not in self._store:
            raise KeyError("enrollment not found")
        self._store[key] = enrollment

    def add_completion(self, completion: LessonCompletion) -> bool:
        key = (completion.user_id, completion.course_id, completion.cycle)
        bucket = self._completions.setdefault(key, {})
        if completion.lesson_id in bucket:
            return False
        bucket[completion.lesson_id] = completion
        return True

    def completed_lesson_ids(self, user_id: str, course_id: UUID, cycle: int) -> set[UUID]:
        return set(self._completions.get((user_id, course_id, cycle), {}))

    def list_by_course(
        self, course_id: UUID, *, offset: int = 0, limit: int | None = None
    ) -> list[Enrollment]:
        rows = sorted(
            (e for e in self._store.values() if e.course_id == course_id),
            key=lambda e: (e.enrolled_at, e.user_id),
        )
        end = None if limit is None else offset + limit
        return rows[offset:end]

    def list_by_user(self, user_id: str) -> list[Enrollment]:
        return sorted(
            (e for e in self._store.values() if e.user_id == user_id),
            key=lambda e: e.enrolled_at,
        )

    @contextmanager
    def locked(self, user_id: str, course_id: UUID) -> Iterator[InMemoryEnrollmentRepo]:
        with self._locks_guard:
            lock = self._locks.setdefault((user_id, course_id), threading.Lock())
        with lock:
            yield self

    def clear(self) -> None:
        self._store.clear()
        self._completions.clear()
