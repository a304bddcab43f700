from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from learnhub.models.assessment import Submission


class SubmissionRepo(Protocol):
    def get(self, submission_id: UUID) -> Submission | None: ...
    def add(self, submission: Submission) -> None: ...
    def replace(self, submission: Submission, *, expected_version: int) -> bool: ...
    def list_by_assignment(self, assignment_id: UUID) -> list[Submission]: ...
    def list_by_student(
        self, assignment_id: UUID, student_id: str
    ) -> list[Submission]: ...


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Submission] = {}
        self._lock = threading.Lock()

    def get(self, submission_id: UUID) -> Submission | None:
        return self._by_id.get(submission_id)

    def add(self, submission: Submission) -> None:
        """Insert a new attempt.  Raises ValueError if the attempt slot is taken."""
        with self._lock:
            for s in self._by_id.values():
                if (
                    s.assignment_id == submission.assignment_id
                    and s.student_id == submission.student_id
                    and s.attempt_no == submission.attempt_no
                ):
                    raise ValueError("attempt already exists")
            self._by_id[submission.id] = submission

    def replace(self, submission: Submission, *, expected_version: int) -> bool:
        """Compare-and-set on version.  False if the stored version moved on."""
        with self._lock:
            current = self._by_id.get(submission.id)
            if current is None or current.version != expected_version:
                return False
            self._by_id[submission.id] = submission
            return True

    def list_by_assignment(self, assignment_id: UUID) -> list[Submission]:
        return sorted(
            (s for s in self._by_id.values() if s.assignment_id == assignment_id),
            key=lambda s: (s.submitted_at, s.attempt_no),
        )

    def list_by_student(self, assignment_id: UUID, student_id: str) -> list[Submission]:
        return sorted(
            (
                s
                for s in self._by_id.values()
                if s.assignment_id == assignment_id and s.student_id == student_id
            ),
            key=lambda s: s.attempt_no,
        )

    def clear(self) -> None:
        self._by_id.clear()
