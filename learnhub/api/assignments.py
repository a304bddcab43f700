"""Assignment authoring, submissions and grading."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from learnhub.api import state
from learnhub.api.dependencies import CurrentUser, Staff
from learnhub.models.assessment import Assignment, Submission
from learnhub.services.authoring import AssignmentDraft
from learnhub.services.grading import GradeEntry, penalized_grade

router = APIRouter(tags=["assignments"])


class AssignmentIn(BaseModel):
    title: str
    description: str
    max_points: int = 100
    due_date: int | None = None
    allow_late_submission: bool = True
    late_penalty_percent: int = 0
    allow_resubmission: bool = False


class AssignmentOut(BaseModel):
    id: str
    lesson_id: str
    title: str
    description: str
    max_points: int
    due_date: int | None
    allow_late_submission: bool
    late_penalty_percent: int
    allow_resubmission: bool


class SubmitIn(BaseModel):
    content: str | None = None
    file_ref: str | None = None


class SubmissionOut(BaseModel):
    id: str
    assignment_id: str
    student_id: str
    attempt_no: int
    submitted_at: int
    is_late: bool
    content: str | None
    file_ref: str | None
    grade: float | None
    display_grade: float | None  # after any late penalty
    feedback: str | None
    graded_by: str | None
    graded_at: int | None
    version: int


class GradeIn(BaseModel):
    grade: float
    feedback: str | None = None
    expected_version: int | None = None


class BulkGradeItemIn(GradeIn):
    submission_id: UUID


class BulkGradeIn(BaseModel):
    grades: list[BulkGradeItemIn]


class BulkGradeOut(BaseModel):
    graded: list[SubmissionOut]
    failed: dict[str, str]


class SubmissionStatsOut(BaseModel):
    total: int
    graded: int
    pending: int
    average_grade: float | None


def assignment_out(a: Assignment) -> AssignmentOut:
    return AssignmentOut(
        id=str(a.id),
        lesson_id=str(a.lesson_id),
        title=a.title,
        description=a.description,
        max_points=a.max_points,
        due_date=a.due_date,
        allow_late_submission=a.allow_late_submission,
        late_penalty_percent=a.late_penalty_percent,
        allow_resubmission=a.allow_resubmission,
    )


def submission_out(s: Submission, assignment: Assignment) -> SubmissionOut:
    return SubmissionOut(
        id=str(s.id),
        assignment_id=str(s.assignment_id),
        student_id=s.student_id,
        attempt_no=s.attempt_no,
        submitted_at=s.submitted_at,
        is_late=s.is_late,
        content=s.content,
        file_ref=s.file_ref,
        grade=s.grade,
        display_grade=penalized_grade(s, assignment),
        feedback=s.feedback,
        graded_by=s.graded_by,
        graded_at=s.graded_at,
        version=s.version,
    )


@router.post(
    "/v1/lessons/{lesson_id}/assignments",
    response_model=AssignmentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(lesson_id: UUID, body: AssignmentIn, principal: Staff) -> AssignmentOut:
    draft = AssignmentDraft(**body.model_dump())
    return assignment_out(state.authoring.create_assignment(principal, lesson_id, draft))


@router.get("/v1/lessons/{lesson_id}/assignments", response_model=list[AssignmentOut])
def list_assignments(lesson_id: UUID, principal: CurrentUser) -> list[AssignmentOut]:
    return [assignment_out(a) for a in state.authoring.list_assignments(principal, lesson_id)]


@router.get("/v1/assignments/{assignment_id}", response_model=AssignmentOut)
def get_assignment(assignment_id: UUID, principal: CurrentUser) -> AssignmentOut:
    return assignment_out(state.authoring.get_assignment(principal, assignment_id))


@router.post(
    "/v1/assignments/{assignment_id}/submissions",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
def submit_assignment(assignment_id: UUID, body: SubmitIn, principal: CurrentUser) -> SubmissionOut:
    submission = state.grading.submit(principal, assignment_id, body.content, body.file_ref)
    return submission_out(submission, state.grading.assignment(assignment_id))


@router.get("/v1/assignments/{assignment_id}/submissions", response_model=list[SubmissionOut])
def list_submissions(assignment_id: UUID, principal: CurrentUser) -> list[SubmissionOut]:
    submissions, assignment = state.grading.list_submissions(principal, assignment_id)
    return [submission_out(s, assignment) for s in submissions]


@router.get("/v1/assignments/{assignment_id}/submissions/stats", response_model=SubmissionStatsOut)
def submission_stats(assignment_id: UUID, principal: Staff) -> SubmissionStatsOut:
    stats = state.grading.submission_stats(principal, assignment_id)
    return SubmissionStatsOut(
        total=stats.total,
        graded=stats.graded,
        pending=stats.pending,
        average_grade=stats.average_grade,
    )


@router.post("/v1/assignments/{assignment_id}/grades/bulk", response_model=BulkGradeOut)
def bulk_grade(assignment_id: UUID, body: BulkGradeIn, principal: Staff) -> BulkGradeOut:
    entries = [
        GradeEntry(
            submission_id=g.submission_id,
            grade=g.grade,
            feedback=g.feedback,
            expected_version=g.expected_version,
        )
        for g in body.grades
    ]
    result = state.grading.bulk_grade(principal, assignment_id, entries)
    assignment = state.grading.assignment(assignment_id)
    return BulkGradeOut(
        graded=[submission_out(s, assignment) for s in result.graded],
        failed=result.failed,
    )


@router.put("/v1/submissions/{submission_id}/grade", response_model=SubmissionOut)
def grade_submission(submission_id: UUID, body: GradeIn, principal: Staff) -> SubmissionOut:
    graded = state.grading.grade(
        principal,
        submission_id,
        body.grade,
        body.feedback,
        expected_version=body.expected_version,
    )
    return submission_out(graded, state.grading.assignment(graded.assignment_id))


@router.get("/v1/submissions/{submission_id}", response_model=SubmissionOut)
def get_submission(submission_id: UUID, principal: CurrentUser) -> SubmissionOut:
    submission, assignment = state.grading.get_submission(principal, submission_id)
    return submission_out(submission, assignment)
