"""Quiz authoring, gated listing and scoring."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from learnhub.api import state
from learnhub.api.dependencies import CurrentUser, Staff
from learnhub.models.assessment import Quiz
from learnhub.services.authoring import QuizDraft

router = APIRouter(tags=["quizzes"])


class QuizIn(BaseModel):
    question: str
    type: str
    answer: str
    points: int = 1
    options: list[str] | None = None

    def draft(self) -> QuizDraft:
        return QuizDraft(
            question=self.question,
            type=self.type,
            answer=self.answer,
            points=self.points,
            options=self.options,
        )


class QuizBulkIn(BaseModel):
    quizzes: list[QuizIn]


class QuizOut(BaseModel):
    id: str
    lesson_id: str
    question: str
    type: str
    points: int
    options: list[str] | None = None
    answer: str | None = None  # staff only


class ScoreIn(BaseModel):
    quiz_ids: list[UUID] = Field(min_length=1)
    answers: dict[UUID, str]


class ScoreOut(BaseModel):
    correct_count: int
    total: int
    percentage: int
    points_earned: int
    points_possible: int


def quiz_out(q: Quiz, *, with_answer: bool) -> QuizOut:
    return QuizOut(
        id=str(q.id),
        lesson_id=str(q.lesson_id),
        question=q.question,
        type=q.type,
        points=q.points,
        options=list(q.options) if q.options is not None else None,
        answer=q.answer if with_answer else None,
    )


@router.post(
    "/v1/lessons/{lesson_id}/quizzes",
    response_model=QuizOut,
    status_code=status.HTTP_201_CREATED,
)
def create_quiz(lesson_id: UUID, body: QuizIn, principal: Staff) -> QuizOut:
    quiz = state.authoring.create_quiz(principal, lesson_id, body.draft())
    return quiz_out(quiz, with_answer=True)


@router.post(
    "/v1/lessons/{lesson_id}/quizzes/bulk",
    response_model=list[QuizOut],
    status_code=status.HTTP_201_CREATED,
)
def create_quizzes(lesson_id: UUID, body: QuizBulkIn, principal: Staff) -> list[QuizOut]:
    quizzes = state.authoring.bulk_create_quizzes(
        principal, lesson_id, [q.draft() for q in body.quizzes]
    )
    return [quiz_out(q, with_answer=True) for q in quizzes]


@router.get("/v1/lessons/{lesson_id}/quizzes", response_model=list[QuizOut])
def list_quizzes(lesson_id: UUID, principal: CurrentUser) -> list[QuizOut]:
    quizzes, staff = state.authoring.list_quizzes(principal, lesson_id)
    return [quiz_out(q, with_answer=staff) for q in quizzes]


@router.post("/v1/quizzes/score", response_model=ScoreOut)
def score_quizzes(body: ScoreIn, principal: CurrentUser) -> ScoreOut:
    result = state.grading.score_quiz_set(principal, body.quiz_ids, body.answers)
    return ScoreOut(
        correct_count=result.correct_count,
        total=result.total,
        percentage=result.percentage,
        points_earned=result.points_earned,
        points_possible=result.points_possible,
    )
