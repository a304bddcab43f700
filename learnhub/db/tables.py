"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in learnhub/models/.
Repos convert between rows and dataclasses.  Course, module and lesson
ids reference the catalog service, so they carry no foreign keys here.

Column types are the generic SQLAlchemy ones (Uuid, JSON) so the same
tables run on PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from learnhub.db.engine import Base

# --- Enrollment ledger ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    enrolled_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="active"
    )  # active|completed|withdrawn
    cycle: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    withdrawn_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (Index("ix_enrollments_course_id", "course_id"),)


class LessonCompletionRow(Base):
    __tablename__ = "lesson_completions"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    cycle: Mapped[int] = mapped_column(Integer, primary_key=True)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    completed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# --- Assessments ---


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # multiple_choice|true_false|text
    options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    answer: Mapped[str] = mapped_column(String(500), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AssignmentRow(Base):
    __tablename__ = "assignments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lesson_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    max_points: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    due_date: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    allow_late_submission: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    late_penalty_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_resubmission: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    assignment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assignments.id"), nullable=False
    )
    student_id: Mapped[str] = mapped_column(String(128), nullable=False)
    attempt_no: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    submitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    graded_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (UniqueConstraint("assignment_id", "student_id", "attempt_no"),)
