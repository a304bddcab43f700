"""Quiz and assignment authoring.

Drafts are validated field by field before anything is written; a bulk
quiz create stores nothing unless every draft is valid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import NotFound, ValidationError
from learnhub.models.assessment import QUIZ_TYPES, Assignment, Quiz
from learnhub.models.principal import Principal
from learnhub.repos.assessment_repo import AssessmentRepo
from learnhub.services.access import AccessControl, ensure_course_staff, is_course_staff

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QuizDraft:
    question: str
    type: str
    answer: str
    points: int = 1
    options: list[str] | None = None


@dataclass(frozen=True, slots=True)
class AssignmentDraft:
    title: str
    description: str
    max_points: int = 100
    due_date: int | None = None
    allow_late_submission: bool = True
    late_penalty_percent: int = 0
    allow_resubmission: bool = False


def _int_in_range(value: object, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def _length_error(value: str | None, low: int, high: int) -> str | None:
    text = (value or "").strip()
    if not low <= len(text) <= high:
        return f"must be {low}-{high} characters"
    return None


def check_quiz(draft: QuizDraft) -> tuple[dict[str, str], tuple[str, ...] | None]:
    """Return (field errors, normalized options)."""
    errors: dict[str, str] = {}

    if (problem := _length_error(draft.question, 10, 1000)) is not None:
        errors["question"] = problem
    if draft.type not in QUIZ_TYPES:
        errors["type"] = f"must be one of {', '.join(QUIZ_TYPES)}"
    if not _int_in_range(draft.points, 1, 100):
        errors["points"] = "must be an integer within 1..100"

    answer = (draft.answer or "").strip()
    if (problem := _length_error(draft.answer, 1, 500)) is not None:
        errors["answer"] = problem

    options: tuple[str, ...] | None = None
    if draft.type == "multiple_choice":
        options = tuple(o.strip() for o in (draft.options or []) if o and o.strip())
        if len(options) < 2:
            errors["options"] = "needs at least 2 non-empty options"
        elif len(set(options)) != len(options):
            errors["options"] = "options must be distinct"
        elif "answer" not in errors and answer not in options:
            errors["answer"] = "must be one of the options"
    elif draft.options:
        errors["options"] = "only allowed for multiple_choice"

    if draft.type == "true_false" and "answer" not in errors and answer not in ("true", "false"):
        errors["answer"] = "must be 'true' or 'false'"

    return errors, options


def check_assignment(draft: AssignmentDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if (problem := _length_error(draft.title, 3, 200)) is not None:
        errors["title"] = problem
    if (problem := _length_error(draft.description, 1, 2000)) is not None:
        errors["description"] = problem
    if not _int_in_range(draft.max_points, 1, 1000):
        errors["max_points"] = "must be an integer within 1..1000"
    if not _int_in_range(draft.late_penalty_percent, 0, 100):
        errors["late_penalty_percent"] = "must be an integer within 0..100"
    if draft.due_date is not None and not _int_in_range(draft.due_date, 0, 2**63 - 1):
        errors["due_date"] = "must be a non-negative epoch timestamp"
    return errors


class AssessmentAuthoring:
    def __init__(self, access: AccessControl, assessments: AssessmentRepo) -> None:
        self._access = access
        self._assessments = assessments

    def _staff_lesson(self, principal: Principal, lesson_id: UUID) -> None:
        course, _ = self._access.lesson(lesson_id)
        ensure_course_staff(principal, course)

    def create_quiz(self, principal: Principal, lesson_id: UUID, draft: QuizDraft) -> Quiz:
        return self.bulk_create_quizzes(principal, lesson_id, [draft])[0]

    def bulk_create_quizzes(
        self, principal: Principal, lesson_id: UUID, drafts: list[QuizDraft]
    ) -> list[Quiz]:
        """Validate every draft, then store them together.

        Field errors are keyed by draft index for bulk requests
        (``"1.answer"``) and by bare field name for a single draft.
        """
        if not drafts:
            raise ValidationError("no quizzes given", errors={"quizzes": "must not be empty"})
        self._staff_lesson(principal, lesson_id)

        errors: dict[str, str] = {}
        quizzes: list[Quiz] = []
        for i, draft in enumerate(drafts):
            draft_errors, options = check_quiz(draft)
            prefix = "" if len(drafts) == 1 else f"{i}."
            errors.update({f"{prefix}{k}": v for k, v in draft_errors.items()})
            if not draft_errors:
                quizzes.append(
                    Quiz.new(
                        lesson_id=lesson_id,
                        question=draft.question.strip(),
                        type=draft.type,
                        answer=draft.answer.strip(),
                        points=draft.points,
                        options=options,
                    )
                )
        if errors:
            logger.warning("Quiz validation failed: lesson=%s fields=%s", lesson_id, sorted(errors))
            raise ValidationError("invalid quiz", errors=errors)

        self._assessments.add_quizzes(quizzes)
        logger.info(
            "Quizzes created: lesson=%s count=%d by=%s",
            lesson_id,
            len(quizzes),
            principal.user_id,
        )
        return quizzes

    def create_assignment(
        self, principal: Principal, lesson_id: UUID, draft: AssignmentDraft
    ) -> Assignment:
        self._staff_lesson(principal, lesson_id)
        errors = check_assignment(draft)
        if errors:
            logger.warning(
                "Assignment validation failed: lesson=%s fields=%s", lesson_id, sorted(errors)
            )
            raise ValidationError("invalid assignment", errors=errors)

        assignment = Assignment.new(
            lesson_id=lesson_id,
            title=draft.title.strip(),
            description=draft.description.strip(),
            max_points=draft.max_points,
            due_date=draft.due_date,
            allow_late_submission=draft.allow_late_submission,
            late_penalty_percent=(
                draft.late_penalty_percent if draft.allow_late_submission else 0
            ),
            allow_resubmission=draft.allow_resubmission,
        )
        self._assessments.add_assignment(assignment)
        logger.info(
            "Assignment created: id=%s lesson=%s by=%s",
            assignment.id,
            lesson_id,
            principal.user_id,
        )
        return assignment

    def list_quizzes(self, principal: Principal, lesson_id: UUID) -> tuple[list[Quiz], bool]:
        """Gated read.  Returns (quizzes, caller_is_staff) so answers can be hidden."""
        course, _ = self._access.require_lesson_access(principal, lesson_id)
        return self._assessments.list_quizzes(lesson_id), is_course_staff(principal, course)

    def list_assignments(self, principal: Principal, lesson_id: UUID) -> list[Assignment]:
        self._access.require_lesson_access(principal, lesson_id)
        return self._assessments.list_assignments(lesson_id)

    def get_assignment(self, principal: Principal, assignment_id: UUID) -> Assignment:
        assignment = self._assessments.get_assignment(assignment_id)
        if assignment is None:
            raise NotFound("assignment not found", assignment_id=assignment_id)
        self._access.require_lesson_access(principal, assignment.lesson_id)
        return assignment

