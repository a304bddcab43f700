from __future__ import annotations

from dataclasses import dataclass, replace
from uuid import UUID

ENROLLMENT_STATES = ("active", "completed", "withdrawn")


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A user's enrollment in a course, one row per (user, course).

    States per cycle:  active(0..99) -> completed(100);  any -> withdrawn.
    Re-enrolling after withdrawal starts cycle + 1 on the same identity.
    Invariant: progress == 100 <=> status == "completed".
    """

    user_id: str
    course_id: UUID
    enrolled_at: int
    progress: int = 0
    status: str = "active"  # active|completed|withdrawn
    cycle: int = 1
    completed_at: int | None = None
    withdrawn_at: int | None = None

    @property
    def is_enrolled(self) -> bool:
        return self.status != "withdrawn"

    @staticmethod
    def new(*, user_id: str, course_id: UUID, enrolled_at: int) -> Enrollment:
        return Enrollment(user_id=user_id, course_id=course_id, enrolled_at=enrolled_at)

    def restarted(self, *, enrolled_at: int) -> Enrollment:
        """Fresh active(0) cycle on the same identity."""
        return Enrollment(
            user_id=self.user_id,
            course_id=self.course_id,
            enrolled_at=enrolled_at,
            cycle=self.cycle + 1,
        )

    def with_progress(self, progress: int, *, now: int) -> Enrollment:
        if not 0 <= progress <= 100:
            raise ValueError(f"progress must be within 0..100 (got {progress})")
        if progress == 100:
            if self.status == "completed":
                return self
            return replace(self, progress=100, status="completed", completed_at=now)
        return replace(self, progress=progress, status="active", completed_at=None)

    def withdrawn(self, *, now: int) -> Enrollment:
        return replace(self, status="withdrawn", withdrawn_at=now)


@dataclass(frozen=True, slots=True)
class LessonCompletion:
    user_id: str
    course_id: UUID
    cycle: int
    lesson_id: UUID
    completed_at: int


@dataclass(frozen=True, slots=True)
class EnrollmentStatus:
    is_enrolled: bool
    enrollment: Enrollment | None


@dataclass(frozen=True, slots=True)
class EnrollmentStats:
    total: int
    active: int
    completed: int
    withdrawn: int
    average_progress: float
