from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.assessment import Assignment, Quiz


class AssessmentRepo(Protocol):
    def add_quizzes(self, quizzes: list[Quiz]) -> None: ...
    def get_quiz(self, quiz_id: UUID) -> Quiz | None: ...
    def list_quizzes(self, lesson_id: UUID) -> list[Quiz]: ...
    def add_assignment(self, assignment: Assignment) -> None: ...
    def get_assignment(self, assignment_id: UUID) -> Assignment | None: ...
    def list_assignments(self, lesson_id: UUID) -> list[Assignment]: ...


class InMemoryAssessmentRepo:
    def __init__(self) -> None:
        # dicts keep insertion order, which is the creation order per lesson
        self._quizzes: dict[UUID, Quiz] = {}
        self._assignments: dict[UUID, Assignment] = {}

    def add_quizzes(self, quizzes: list[Quiz]) -> None:
        for q in quizzes:
            if q.id in self._quizzes:
                raise ValueError("quiz already exists")
        for q in quizzes:
            self._quizzes[q.id] = q

    def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self._quizzes.get(quiz_id)

    def list_quizzes(self, lesson_id: UUID) -> list[Quiz]:
        return [q for q in self._quizzes.values() if q.lesson_id == lesson_id]

    def add_assignment(self, assignment: Assignment) -> None:
        if assignment.id in self._assignments:
            raise ValueError("assignment already exists")
        self._assignments[assignment.id] = assignment

    def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        return self._assignments.get(assignment_id)

    def list_assignments(self, lesson_id: UUID) -> list[Assignment]:
        return [a for a in self._assignments.values() if a.lesson_id == lesson_id]

    def clear(self) -> None:
        self._quizzes.clear()
        self._assignments.clear()
