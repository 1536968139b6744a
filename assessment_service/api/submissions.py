"""The current user's submissions and dashboard statistics.

GET /v1/submissions/stats is read-through cached per user; the cache
entry is deleted whenever one of the user's submissions is persisted or
completed (see services/backends.invalidate_user_cache).
"""

from __future__ import annotations

import json
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from assessment_service.api.dependencies import require_user
from assessment_service.api.schemas import SubmissionOut
from assessment_service.models.principal import Principal
from assessment_service.services.backends import (
    catalog,
    stats_cache_key,
    submission_repo,
)
from assessment_service.services.cache import cache_service
from assessment_service.services.stats import dashboard_stats

router = APIRouter(prefix="/v1/submissions", tags=["submissions"])

# Long enough to absorb dashboard refreshes; explicit invalidation keeps
# it fresh after saves, the TTL covers anything invalidation misses.
_STATS_CACHE_TTL = 300


class DashboardStatsOut(BaseModel):
    total_assessments: int
    completed_assessments: int
    in_progress_assessments: int
    completion_rate: int
    total_time_spent_hours: float
    last_activity_at: int | None = None
    last_completed_assessment: str | None = None


@router.get("", response_model=list[SubmissionOut])
async def list_my_submissions(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[SubmissionOut]:
    submissions = await submission_repo.list_for_user(principal.user_id)
    return [SubmissionOut.from_submission(s) for s in submissions]


@router.get("/stats", response_model=DashboardStatsOut)
async def get_dashboard_stats(
    principal: Annotated[Principal, Depends(require_user)],
) -> DashboardStatsOut:
    cache_key = stats_cache_key(principal.user_id)

    cached = await cache_service.get(cache_key)
    if cached is not None:
        return DashboardStatsOut(**json.loads(cached))

    stats = dashboard_stats(
        await submission_repo.list_for_user(principal.user_id),
        await catalog.list(),
    )
    await cache_service.set(cache_key, json.dumps(stats.to_dict()), _STATS_CACHE_TTL)
    return DashboardStatsOut(**stats.to_dict())
