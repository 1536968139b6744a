"""Dashboard statistics derived from a user's submissions."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import asdict, dataclass

from assessment_service.models.assessment import Assessment
from assessment_service.models.submission import Submission
from assessment_service.services.progress import percent


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_assessments: int
    completed_assessments: int
    in_progress_assessments: int
    completion_rate: int
    total_time_spent_hours: float
    last_activity_at: int | None = None
    last_completed_assessment: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def dashboard_stats(
    submissions: Iterable[Submission], assessments: Iterable[Assessment]
) -> DashboardStats:
    catalog = {a.id: a for a in assessments}
    submissions = list(submissions)

    completed = [s for s in submissions if s.is_completed]
    completed_ids = {s.assessment_id for s in completed}
    in_progress_ids = {s.assessment_id for s in submissions if not s.is_completed}

    minutes = sum(
        catalog[aid].estimated_time for aid in completed_ids if aid in catalog
    )
    hours = math.floor(minutes / 60 * 10 + 0.5) / 10

    last_activity = max(
        (s.completed_at or s.updated_at or s.created_at for s in submissions),
        default=None,
    )
    latest_completed = max(
        completed, key=lambda s: s.completed_at or 0, default=None
    )

    return DashboardStats(
        total_assessments=len(catalog),
        completed_assessments=len(completed_ids),
        in_progress_assessments=len(in_progress_ids),
        completion_rate=percent(len(completed_ids), len(catalog)),
        total_time_spent_hours=hours,
        last_activity_at=last_activity,
        last_completed_assessment=(
            latest_completed.assessment_id if latest_completed is not None else None
        ),
    )
