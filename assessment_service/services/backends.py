"""Process-wide backend singletons.

Same conditional pattern as the cache: PostgreSQL when DATABASE_URL is
configured, in-memory otherwise.
"""

from __future__ import annotations

from assessment_service.core.config import SETTINGS
from assessment_service.db.engine import async_session_factory
from assessment_service.models.submission import Submission
from assessment_service.repos.assessment_repo import (
    InMemoryAssessmentCatalog,
    seed_sample_assessment,
)
from assessment_service.repos.submission_repo import (
    InMemorySubmissionRepo,
    SubmissionRepo,
)
from assessment_service.services.cache import cache_service
from assessment_service.services.sessions import SessionRegistry


def stats_cache_key(user_id: str) -> str:
    return f"stats:{user_id}"


async def invalidate_user_cache(submission: Submission) -> None:
    await cache_service.delete(stats_cache_key(submission.user_id))


catalog = InMemoryAssessmentCatalog()
seed_sample_assessment(catalog)

if async_session_factory is not None:
    from assessment_service.repos.pg_submission_repo import PgSubmissionRepo

    submission_repo: SubmissionRepo = PgSubmissionRepo(async_session_factory)
else:
    submission_repo = InMemorySubmissionRepo()

session_registry = SessionRegistry(
    submission_repo,
    quiet_period=SETTINGS.autosave_quiet_seconds,
    idle_timeout=SETTINGS.session_idle_seconds,
    on_change=invalidate_user_cache,
)
