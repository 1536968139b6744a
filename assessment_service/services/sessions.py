"""Live assessment sessions held between HTTP requests.

A session is one (user, assessment) pair with its own lifecycle
controller, and therefore its own debounce timer.  Re-entering a pair
that is already open (a page remount, a second request from the same
tab) returns the same controller instead of opening another one.

Leaving a session fires its final flush without waiting; the registry
keeps a strong reference to that task, keyed by pair, until it resolves.
Entering the same pair again waits for that flush first so the new
controller loads what the old one wrote.  shutdown() waits for all of
them.

Sessions end three ways: an explicit leave, a successful completion, or
going idle for longer than idle_timeout (swept on enter and by
run_idle_sweeper()).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any

from assessment_service.core.metrics import ACTIVE_SESSIONS, SUBMISSION_COMPLETIONS
from assessment_service.models.assessment import Assessment
from assessment_service.models.submission import COMPLETED, Submission
from assessment_service.repos.submission_repo import SubmissionRepo
from assessment_service.services.autosave import DEFAULT_QUIET_PERIOD
from assessment_service.services.lifecycle import (
    OnChange,
    SubmissionLifecycleController,
)

logger = logging.getLogger(__name__)

SessionKey = tuple[str, str]  # (user_id, assessment_id)

DEFAULT_IDLE_TIMEOUT = 1800.0


class SessionRegistry:
    def __init__(
        self,
        repo: SubmissionRepo,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        on_change: OnChange | None = None,
    ) -> None:
        self._repo = repo
        self._quiet_period = quiet_period
        self._idle_timeout = idle_timeout
        self._on_change = on_change
        self._sessions: dict[SessionKey, SubmissionLifecycleController] = {}
        self._draining: dict[SessionKey, asyncio.Task[None]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: str, assessment_id: str) -> SubmissionLifecycleController | None:
        return self._sessions.get((user_id, assessment_id))

    async def enter(
        self, user_id: str, assessment: Assessment
    ) -> SubmissionLifecycleController:
        self.evict_idle()

        key = (user_id, assessment.id)
        existing = self._sessions.get(key)
        if existing is not None:
            return existing

        pending = self._draining.get(key)
        if pending is not None:
            # Does not raise the flush error or cancel the flush.
            logger.debug("Waiting for exit flush before re-entry user=%s", user_id)
            await asyncio.wait({pending})
            existing = self._sessions.get(key)
            if existing is not None:
                return existing

        controller = await SubmissionLifecycleController.open(
            self._repo,
            user_id,
            assessment,
            quiet_period=self._quiet_period,
            on_change=self._on_change,
        )

        # Another request for the same pair may have opened it while we
        # were awaiting the backend; keep the first one.
        winner = self._sessions.setdefault(key, controller)
        if winner is not controller:
            controller.scheduler.cancel()
            return winner

        ACTIVE_SESSIONS.set(len(self._sessions))
        logger.info(
            "Session opened user=%s",
            user_id,
            extra={
                "submission_id": str(controller.submission.id),
                "assessment_id": assessment.id,
            },
        )
        return controller

    def leave(self, user_id: str, assessment_id: str) -> bool:
        """Close a session and start its final flush.  False if none was open."""
        key = (user_id, assessment_id)
        controller = self._sessions.pop(key, None)
        if controller is None:
            return False

        ACTIVE_SESSIONS.set(len(self._sessions))
        task = controller.leave()
        if task is not None:
            self._draining[key] = task
            task.add_done_callback(lambda t: self._forget_flush(key, t))
        logger.info(
            "Session closed user=%s flush=%s",
            user_id,
            "pending" if task is not None else "none",
            extra={"assessment_id": assessment_id},
        )
        return True

    def _forget_flush(self, key: SessionKey, task: asyncio.Task[None]) -> None:
        if self._draining.get(key) is task:
            del self._draining[key]

    async def complete(
        self,
        user_id: str,
        assessment_id: str,
        answers: Mapping[str, Any] | None = None,
    ) -> Submission | None:
        """Complete the pair's submission and close its session.

        With no open session, a stored completed submission is returned as
        a duplicate; None means there is nothing to complete.  Raises
        CompletionError if the write fails, leaving the session open.
        """
        key = (user_id, assessment_id)
        controller = self._sessions.get(key)
        if controller is None:
            stored = await self._repo.find(user_id, assessment_id)
            if stored is None or stored.status != COMPLETED:
                return None
            SUBMISSION_COMPLETIONS.labels(result="duplicate").inc()
            logger.info(
                "Duplicate completion of a closed session user=%s",
                user_id,
                extra={"submission_id": str(stored.id), "assessment_id": assessment_id},
            )
            return stored

        submission = await controller.complete(answers)

        if self._sessions.get(key) is controller:
            del self._sessions[key]
            ACTIVE_SESSIONS.set(len(self._sessions))
            logger.info(
                "Session closed on completion user=%s",
                user_id,
                extra={"submission_id": str(submission.id), "assessment_id": assessment_id},
            )
        return submission

    def evict_idle(self, now: float | None = None) -> int:
        """Leave every session untouched for longer than idle_timeout."""
        if now is None:
            now = time.monotonic()
        idle = [
            key
            for key, controller in self._sessions.items()
            if now - controller.last_active > self._idle_timeout
        ]
        for user_id, assessment_id in idle:
            self.leave(user_id, assessment_id)
        if idle:
            logger.info("Evicted %d idle session(s)", len(idle))
        return len(idle)

    async def run_idle_sweeper(self, interval: float) -> None:
        """Evict idle sessions every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.evict_idle()

    async def shutdown(self) -> None:
        """Flush every open session and wait for outstanding exit writes."""
        for user_id, assessment_id in list(self._sessions):
            self.leave(user_id, assessment_id)
        if self._draining:
            logger.info("Waiting for %d exit flush(es)", len(self._draining))
            await asyncio.gather(*self._draining.values(), return_exceptions=True)

    def clear(self) -> None:
        """Forget all sessions without flushing (test isolation)."""
        for controller in self._sessions.values():
            controller.scheduler.cancel()
        self._sessions.clear()
        self._draining.clear()
        ACTIVE_SESSIONS.set(0)
