from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

QUIZ_TYPES = ("multiple_choice", "true_false", "text")


@dataclass(frozen=True, slots=True)
class Quiz:
    id: UUID
    lesson_id: UUID
    question: str
    type: str  # multiple_choice|true_false|text
    answer: str
    points: int = 1
    options: tuple[str, ...] | None = None  # set iff type == multiple_choice

    @staticmethod
    def new(
        *,
        lesson_id: UUID,
        question: str,
        type: str,
        answer: str,
        points: int = 1,
        options: tuple[str, ...] | None = None,
    ) -> Quiz:
        return Quiz(
            id=uuid4(),
            lesson_id=lesson_id,
            question=question,
            type=type,
            answer=answer,
            points=points,
            options=options,
        )


@dataclass(frozen=True, slots=True)
class Assignment:
    id: UUID
    lesson_id: UUID
    title: str
    description: str
    max_points: int = 100
    due_date: int | None = None
    allow_late_submission: bool = True
    late_penalty_percent: int = 0
    allow_resubmission: bool = False

    @staticmethod
    def new(
        *,
        lesson_id: UUID,
        title: str,
        description: str,
        max_points: int = 100,
        due_date: int | None = None,
        allow_late_submission: bool = True,
        late_penalty_percent: int = 0,
        allow_resubmission: bool = False,
    ) -> Assignment:
        return Assignment(
            id=uuid4(),
            lesson_id=lesson_id,
            title=title,
            description=description,
            max_points=max_points,
            due_date=due_date,
            allow_late_submission=allow_late_submission,
            late_penalty_percent=late_penalty_percent,
            allow_resubmission=allow_resubmission,
        )


@dataclass(frozen=True, slots=True)
class Submission:
    """A student's answer to an assignment.

    `grade` is the raw instructor input.  Late penalties are applied at
    read time (see services.grading.penalized_grade), never stored.
    `version` increments on every grade write; writers compare-and-set it.
    """

    id: UUID
    assignment_id: UUID
    student_id: str
    submitted_at: int
    is_late: bool = False
    content: str | None = None
    file_ref: str | None = None
    attempt_no: int = 1
    grade: float | None = None
    feedback: str | None = None
    graded_by: str | None = None
    graded_at: int | None = None
    version: int = 1

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @staticmethod
    def new(
        *,
        assignment_id: UUID,
        student_id: str,
        submitted_at: int,
        is_late: bool,
        content: str | None = None,
        file_ref: str | None = None,
        attempt_no: int = 1,
    ) -> Submission:
        return Submission(
            id=uuid4(),
            assignment_id=assignment_id,
            student_id=student_id,
            submitted_at=submitted_at,
            is_late=is_late,
            content=content,
            file_ref=file_ref,
            attempt_no=attempt_no,
        )


@dataclass(frozen=True, slots=True)
class QuizScore:
    correct_count: int
    total: int
    percentage: int
    points_earned: int = 0
    points_possible: int = 0


@dataclass(frozen=True, slots=True)
class SubmissionStats:
    total: int
    graded: int
    pending: int
    average_grade: float | None
