"""Submission lifecycle: autosave while in progress, complete exactly once.

State machine over Submission.status:

    in_progress --autosave--> in_progress
    in_progress --complete--> completed      (terminal)

The controller is the form's only counterpart.  The form feeds it the
full answer map on every edit (notify) and once more on finish
(complete); the controller keeps the newest map in memory as the source
of truth and never clears it on error.
"""

from __future__ import annotations

import asyncio
import logging
import time
import warnings
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from typing import Any

from assessment_service.core.metrics import AUTOSAVE_WRITES, SUBMISSION_COMPLETIONS
from assessment_service.models.assessment import Assessment
from assessment_service.models.submission import (
    COMPLETED,
    Response,
    Submission,
    SubmissionStatus,
    now_epoch,
    responses_from_answers,
)
from assessment_service.repos.submission_repo import SubmissionRepo
from assessment_service.services.autosave import DEFAULT_QUIET_PERIOD, AutosaveScheduler
from assessment_service.services.errors import (
    CompletionError,
    DataDriftWarning,
    PersistenceError,
)
from assessment_service.services.progress import answered_count, percent
from assessment_service.services.reconciliation import ReconciliationLoader, rehydrate

logger = logging.getLogger(__name__)

OnChange = Callable[[Submission], Awaitable[None]]


class SubmissionLifecycleController:
    def __init__(
        self,
        repo: SubmissionRepo,
        assessment: Assessment,
        submission: Submission,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        on_change: OnChange | None = None,
    ) -> None:
        self._repo = repo
        self._assessment = assessment
        self._submission = submission
        self._on_change = on_change
        self._known_ids = assessment.question_ids()
        self._total = assessment.total_questions
        self._drifted: set[str] = set()
        self._completing: asyncio.Task[Submission] | None = None
        self._last_active = time.monotonic()
        self._log_extra = {
            "submission_id": str(submission.id),
            "assessment_id": assessment.id,
        }

        self._answers = rehydrate(submission)
        self._initial = dict(self._answers)
        self._warn_drift(self._answers)

        self._scheduler = AutosaveScheduler(
            self._persist, quiet_period=quiet_period, log_extra=self._log_extra
        )
        if submission.is_completed:
            self._scheduler.cancel()

    @classmethod
    async def open(
        cls,
        repo: SubmissionRepo,
        user_id: str,
        assessment: Assessment,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        on_change: OnChange | None = None,
    ) -> SubmissionLifecycleController:
        """Enter an assessment: find-or-create its submission and wrap it.

        Raises InitializationError if the backend cannot be reached.
        """
        loader = ReconciliationLoader(repo, user_id, on_create=on_change)
        submission = await loader.enter(assessment.id)
        return cls(
            repo,
            assessment,
            submission,
            quiet_period=quiet_period,
            on_change=on_change,
        )

    @property
    def submission(self) -> Submission:
        return self._submission

    @property
    def status(self) -> SubmissionStatus:
        return self._submission.status

    @property
    def assessment(self) -> Assessment:
        return self._assessment

    @property
    def initial_answers(self) -> dict[str, Any]:
        return dict(self._initial)

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._answers)

    @property
    def scheduler(self) -> AutosaveScheduler:
        return self._scheduler

    @property
    def last_active(self) -> float:
        """time.monotonic() of the last renderer event."""
        return self._last_active

    # -- renderer handlers -------------------------------------------------

    def notify(self, answers: Mapping[str, Any]) -> None:
        self._last_active = time.monotonic()
        if self.status == COMPLETED:
            logger.debug("Edit after completion ignored", extra=self._log_extra)
            return
        self._answers = dict(answers)
        self._warn_drift(self._answers)
        self._scheduler.notify(self._answers)

    async def save(self) -> bool:
        self._last_active = time.monotonic()
        if self.status == COMPLETED:
            return True
        return await self._scheduler.flush_now()

    def leave(self) -> asyncio.Task[None] | None:
        if self.status == COMPLETED:
            self._scheduler.cancel()
            return None
        return self._scheduler.flush_on_exit()

    async def complete(self, answers: Mapping[str, Any] | None = None) -> Submission:
        """Terminal transition.  Safe to call more than once.

        Raises CompletionError if the write fails; the submission then stays
        in progress and a retry resubmits the same answers.
        """
        self._last_active = time.monotonic()
        if self.status == COMPLETED:
            SUBMISSION_COMPLETIONS.labels(result="duplicate").inc()
            logger.info("Duplicate completion ignored", extra=self._log_extra)
            return self._submission

        if self._completing is not None:
            SUBMISSION_COMPLETIONS.labels(result="duplicate").inc()
            return await asyncio.shield(self._completing)

        if answers is not None:
            self._answers = dict(answers)
            self._warn_drift(self._answers)

        task = asyncio.get_running_loop().create_task(
            self._write_completion(dict(self._answers))
        )
        self._completing = task
        task.add_done_callback(self._clear_completing)
        return await asyncio.shield(task)

    # -- internals ---------------------------------------------------------

    async def _persist(self, answers: dict[str, Any]) -> None:
        if self.status == COMPLETED or self._completing is not None:
            AUTOSAVE_WRITES.labels(result="discarded").inc()
            return

        responses = responses_from_answers(answers)
        percent_complete = percent(answered_count(answers), self._total)
        try:
            applied = await self._repo.update(
                self._submission.id,
                responses=responses,
                percent_complete=percent_complete,
            )
        except Exception as exc:
            raise PersistenceError(self._submission.id, str(exc)) from exc

        if not applied and (self._completing is not None or self.status == COMPLETED):
            # Our own completion got there first.
            AUTOSAVE_WRITES.labels(result="discarded").inc()
            return

        if not applied:
            AUTOSAVE_WRITES.labels(result="rejected").inc()
            logger.warning(
                "Autosave rejected: submission completed elsewhere",
                extra=self._log_extra,
            )
            self._scheduler.cancel()
            self._submission = await self._adopt_completed(responses)
            return

        if self.status == COMPLETED:
            # Completed while this write was in flight; the completed
            # record is authoritative.
            AUTOSAVE_WRITES.labels(result="discarded").inc()
            return

        self._submission = replace(
            self._submission,
            responses=responses,
            percent_complete=percent_complete,
            updated_at=now_epoch(),
        )
        AUTOSAVE_WRITES.labels(result="ok").inc()
        logger.debug(
            "Autosaved %d responses (%d%%)",
            len(responses),
            percent_complete,
            extra=self._log_extra,
        )
        await self._emit_change()

    async def _write_completion(self, answers: dict[str, Any]) -> Submission:
        self._scheduler.cancel()
        responses = responses_from_answers(answers)
        try:
            applied = await self._repo.complete(self._submission.id, responses)
        except Exception as exc:
            SUBMISSION_COMPLETIONS.labels(result="failed").inc()
            logger.exception("Completion write failed", extra=self._log_extra)
            # Back to editing; re-arm autosave so the answers still land.
            self._scheduler.reopen()
            self._scheduler.notify(self._answers)
            raise CompletionError(self._submission.id, str(exc)) from exc

        if applied:
            SUBMISSION_COMPLETIONS.labels(result="completed").inc()
            now = now_epoch()
            self._submission = replace(
                self._submission,
                responses=responses,
                percent_complete=100,
                status=COMPLETED,
                updated_at=now,
                completed_at=now,
            )
            logger.info("Submission completed", extra=self._log_extra)
        else:
            SUBMISSION_COMPLETIONS.labels(result="duplicate").inc()
            logger.info("Submission was already completed", extra=self._log_extra)
            self._submission = await self._adopt_completed(responses)

        await self._emit_change()
        return self._submission

    async def _adopt_completed(self, responses: tuple[Response, ...]) -> Submission:
        """Take the stored completed record, or synthesize it if unreadable."""
        try:
            stored = await self._repo.get(self._submission.id)
        except Exception:
            logger.exception("Could not reload completed submission", extra=self._log_extra)
            stored = None
        if stored is not None and stored.is_completed:
            return stored
        return replace(
            self._submission,
            responses=responses,
            percent_complete=100,
            status=COMPLETED,
        )

    def _clear_completing(self, task: asyncio.Task[Submission]) -> None:
        self._completing = None
        if not task.cancelled():
            # Mark retrieved; the awaiting caller already received it.
            task.exception()

    async def _emit_change(self) -> None:
        if self._on_change is None:
            return
        try:
            await self._on_change(self._submission)
        except Exception:
            logger.exception("Submission change hook failed", extra=self._log_extra)

    def _warn_drift(self, answers: Mapping[str, Any]) -> None:
        unknown = set(answers) - self._known_ids - self._drifted
        if not unknown:
            return
        self._drifted |= unknown
        names = ", ".join(sorted(unknown))
        logger.warning(
            "Responses reference unknown questions: %s", names, extra=self._log_extra
        )
        warnings.warn(
            f"assessment {self._assessment.id!r} has no question(s) {names}",
            DataDriftWarning,
            stacklevel=3,
        )
