from __future__ import annotations

import uuid

from assessment_service.models.assessment import Assessment
from assessment_service.models.submission import COMPLETED, IN_PROGRESS, Submission
from assessment_service.services.stats import dashboard_stats

CATALOG = [
    Assessment(id="a1", title="One", estimated_time=20),
    Assessment(id="a2", title="Two", estimated_time=45),
    Assessment(id="a3", title="Three", estimated_time=15),
]


def _submission(assessment_id: str, status: str = IN_PROGRESS, **kw) -> Submission:
    return Submission(
        id=uuid.uuid4(),
        user_id="learner",
        assessment_id=assessment_id,
        status=status,  # type: ignore[arg-type]
        **kw,
    )


def test_stats_for_new_user() -> None:
    stats = dashboard_stats([], CATALOG)
    assert stats.total_assessments == 3
    assert stats.completed_assessments == 0
    assert stats.in_progress_assessments == 0
    assert stats.completion_rate == 0
    assert stats.total_time_spent_hours == 0
    assert stats.last_activity_at is None
    assert stats.last_completed_assessment is None


def test_stats_counts_distinct_assessments() -> None:
    submissions = [
        _submission("a1", COMPLETED, created_at=10, completed_at=100),
        _submission("a1", COMPLETED, created_at=20, completed_at=200),
        _submission("a2", COMPLETED, created_at=30, completed_at=150),
        _submission("a3", created_at=40, updated_at=300),
    ]
    stats = dashboard_stats(submissions, CATALOG)
    assert stats.completed_assessments == 2
    assert stats.in_progress_assessments == 1
    assert stats.completion_rate == 67
    # (20 + 45) minutes
    assert stats.total_time_spent_hours == 1.1
    assert stats.last_activity_at == 300
    assert stats.last_completed_assessment == "a1"


def test_stats_ignore_assessments_missing_from_catalog() -> None:
    submissions = [_submission("retired", COMPLETED, created_at=1, completed_at=2)]
    stats = dashboard_stats(submissions, CATALOG)
    assert stats.total_time_spent_hours == 0
    assert stats.last_completed_assessment == "retired"


def test_stats_with_empty_catalog() -> None:
    stats = dashboard_stats([], [])
    assert stats.total_assessments == 0
    assert stats.completion_rate == 0
