from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

# The dev sample course is not seeded under APP_ENV=test.
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learnhub.api import state  # noqa: E402
from learnhub.main import app  # noqa: E402
from learnhub.models.catalog import Course, CourseModule, Lesson  # noqa: E402
from learnhub.repos.assessment_repo import InMemoryAssessmentRepo  # noqa: E402
from learnhub.repos.catalog_repo import InMemoryCatalogRepo  # noqa: E402
from learnhub.repos.enrollment_repo import InMemoryEnrollmentRepo  # noqa: E402
from learnhub.repos.submission_repo import InMemorySubmissionRepo  # noqa: E402
from learnhub.services import token_service  # noqa: E402
from learnhub.services.access import AccessControl  # noqa: E402
from learnhub.services.authoring import AssessmentAuthoring  # noqa: E402
from learnhub.services.cache import cache_service  # noqa: E402
from learnhub.services.grading import GradingEngine  # noqa: E402
from learnhub.services.ledger import EnrollmentLedger  # noqa: E402
from learnhub.services.progress import ProgressTracker  # noqa: E402

# Ensure repo root is on sys.path so `import learnhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

OWNER_ID = "instructor-1"


@pytest.fixture(autouse=True)
def reset_app_state() -> None:
    """Clear the module-level in-memory repos between tests."""
    for repo in (
        state.catalog_repo,
        state.enrollment_repo,
        state.assessment_repo,
        state.submission_repo,
    ):
        if hasattr(repo, "clear"):
            repo.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "student-1",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(username: str = "student-1", roles: list[str] | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(username, roles)}"}


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def seed_course(
    catalog: InMemoryCatalogRepo,
    *,
    slug: str = "python-101",
    owner_id: str = OWNER_ID,
    status: str = "published",
    lessons_per_module: tuple[int, ...] = (2, 2),
) -> tuple[Course, list[Lesson]]:
    """Create a course with the given module/lesson shape.  Lessons come back in course order."""
    course = Course.new(slug=slug, title=slug.replace("-", " ").title(), owner_id=owner_id, status=status)
    catalog.add_course(course)
    lessons: list[Lesson] = []
    for m_pos, count in enumerate(lessons_per_module, start=1):
        module = CourseModule.new(course_id=course.id, position=m_pos, title=f"Module {m_pos}")
        catalog.add_module(module)
        for l_pos in range(1, count + 1):
            lesson = Lesson.new(
                course_id=course.id,
                module_id=module.id,
                position=l_pos,
                title=f"Lesson {m_pos}.{l_pos}",
                content=f"body {m_pos}.{l_pos}",
            )
            catalog.add_lesson(lesson)
            lessons.append(lesson)
    return course, lessons


@pytest.fixture
def published_course() -> tuple[Course, list[Lesson]]:
    """A published 4-lesson course in the app's catalog."""
    return seed_course(state.catalog_repo)


# ---------------------------------------------------------------------------
# Service-level wiring (fresh in-memory repos per test)
# ---------------------------------------------------------------------------


@dataclass
class Core:
    catalog: InMemoryCatalogRepo
    enrollments: InMemoryEnrollmentRepo
    assessments: InMemoryAssessmentRepo
    submissions: InMemorySubmissionRepo
    access: AccessControl
    ledger: EnrollmentLedger
    tracker: ProgressTracker
    authoring: AssessmentAuthoring
    grading: GradingEngine


@pytest.fixture
def core() -> Core:
    catalog = InMemoryCatalogRepo()
    enrollments = InMemoryEnrollmentRepo()
    assessments = InMemoryAssessmentRepo()
    submissions = InMemorySubmissionRepo()
    access = AccessControl(catalog, enrollments)
    ledger = EnrollmentLedger(catalog, enrollments)
    return Core(
        catalog=catalog,
        enrollments=enrollments,
        assessments=assessments,
        submissions=submissions,
        access=access,
        ledger=ledger,
        tracker=ProgressTracker(catalog, enrollments, access, ledger),
        authoring=AssessmentAuthoring(access, assessments),
        grading=GradingEngine(access, assessments, submissions),
    )
