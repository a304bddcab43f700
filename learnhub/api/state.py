"""Module-level service singletons shared by the routers.

SQL repositories are used when DATABASE_URL is configured; otherwise
everything is in memory.  The catalog is owned by another service and is
always read through a CatalogRepo; locally it is the in-memory stand-in,
seeded with a sample course in dev.
"""

from __future__ import annotations

import logging

from learnhub.core.config import SETTINGS
from learnhub.db.engine import session_factory
from learnhub.models.catalog import Course, CourseModule, Lesson
from learnhub.repos.assessment_repo import AssessmentRepo, InMemoryAssessmentRepo
from learnhub.repos.catalog_repo import InMemoryCatalogRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from learnhub.repos.sql_assessment_repo import SqlAssessmentRepo, SqlSubmissionRepo
from learnhub.repos.sql_enrollment_repo import SqlEnrollmentRepo
from learnhub.repos.submission_repo import InMemorySubmissionRepo, SubmissionRepo
from learnhub.services.access import AccessControl
from learnhub.services.authoring import AssessmentAuthoring
from learnhub.services.grading import GradingEngine
from learnhub.services.ledger import EnrollmentLedger
from learnhub.services.progress import ProgressTracker

logger = logging.getLogger(__name__)

catalog_repo = InMemoryCatalogRepo()

if session_factory is not None:
    enrollment_repo: EnrollmentRepo = SqlEnrollmentRepo(session_factory)
    assessment_repo: AssessmentRepo = SqlAssessmentRepo(session_factory)
    submission_repo: SubmissionRepo = SqlSubmissionRepo(session_factory)
else:
    enrollment_repo = InMemoryEnrollmentRepo()
    assessment_repo = InMemoryAssessmentRepo()
    submission_repo = InMemorySubmissionRepo()

access_control = AccessControl(catalog_repo, enrollment_repo)
ledger = EnrollmentLedger(catalog_repo, enrollment_repo)
tracker = ProgressTracker(catalog_repo, enrollment_repo, access_control, ledger)
authoring = AssessmentAuthoring(access_control, assessment_repo)
grading = GradingEngine(access_control, assessment_repo, submission_repo)


def seed_sample_course() -> Course:
    """Seed a published two-module course for local development."""
    course = Course.new(
        slug="intro-to-python",
        title="Introduction to Python",
        owner_id="instructor-1",
        status="published",
    )
    catalog_repo.add_course(course)
    for m_pos, titles in enumerate((("Install", "Hello world"), ("Lists", "Dicts")), start=1):
        module = CourseModule.new(course_id=course.id, position=m_pos, title=f"Module {m_pos}")
        catalog_repo.add_module(module)
        for l_pos, title in enumerate(titles, start=1):
            catalog_repo.add_lesson(
                Lesson.new(
                    course_id=course.id,
                    module_id=module.id,
                    position=l_pos,
                    title=title,
                    content=f"{title} lesson body",
                )
            )
    logger.info("Seeded sample course id=%s slug=%s", course.id, course.slug)
    return course


if SETTINGS.is_dev:
    seed_sample_course()
