from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from assessment_service.core.metrics import SUBMISSION_ENTRIES
from assessment_service.models.submission import IN_PROGRESS, Submission
from assessment_service.repos.submission_repo import SubmissionRepo
from assessment_service.services.errors import InitializationError

logger = logging.getLogger(__name__)


class ReconciliationLoader:
    """Find-or-create the submission a user is entering.

    Bound to one identity; the repo does the actual uniqueness
    enforcement, so entering twice yields the same submission.
    """

    def __init__(
        self,
        repo: SubmissionRepo,
        user_id: str,
        *,
        on_create: Callable[[Submission], Awaitable[None]] | None = None,
    ) -> None:
        self._repo = repo
        self._user_id = user_id
        self._on_create = on_create

    async def enter(self, assessment_id: str) -> Submission:
        try:
            submission = await self._repo.find(self._user_id, assessment_id)
            if submission is not None:
                SUBMISSION_ENTRIES.labels(result="resumed").inc()
                logger.info(
                    "Resumed submission=%s status=%s",
                    submission.id,
                    submission.status,
                    extra={
                        "submission_id": str(submission.id),
                        "assessment_id": assessment_id,
                    },
                )
                return submission

            submission = await self._repo.create(
                self._user_id, assessment_id, responses=(), status=IN_PROGRESS
            )
        except Exception as exc:
            logger.exception(
                "Could not open submission for user=%s",
                self._user_id,
                extra={"assessment_id": assessment_id},
            )
            raise InitializationError(assessment_id, str(exc)) from exc

        SUBMISSION_ENTRIES.labels(result="created").inc()
        logger.info(
            "Created submission=%s",
            submission.id,
            extra={
                "submission_id": str(submission.id),
                "assessment_id": assessment_id,
            },
        )
        if self._on_create is not None:
            try:
                await self._on_create(submission)
            except Exception:
                logger.exception(
                    "Submission create hook failed",
                    extra={"submission_id": str(submission.id)},
                )
        return submission


def rehydrate(submission: Submission) -> dict[str, Any]:
    """Initial value map for the form, keyed by question id.

    Later responses for the same question win.
    """
    answers: dict[str, Any] = {}
    for response in submission.responses:
        if response.question_id:
            answers[response.question_id] = response.value
    return answers
