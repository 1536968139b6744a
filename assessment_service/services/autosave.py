"""Debounced background persistence of a learner's answer set.

Every edit calls notify() with the full current answer map.  The
scheduler keeps only the latest map and (re)arms one trailing-edge timer;
when the form has been quiet for ``quiet_period`` seconds the latest map
is handed to the persist callable.

Ordering rules:

  * at most one persist call is in flight;
  * a save requested while one is in flight is folded into a single
    follow-up that runs, with the newest data, as soon as the flight
    resolves;
  * nothing is written twice for the same edit: a follow-up only runs if
    something changed since the flight took its snapshot.

Together these keep writes in the order their edits were finalized.
The timer is owned by the instance, so each open assessment session
debounces independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from assessment_service.core.metrics import AUTOSAVE_COALESCED, AUTOSAVE_WRITES

logger = logging.getLogger(__name__)

PersistFn = Callable[[dict[str, Any]], Awaitable[None]]

DEFAULT_QUIET_PERIOD = 2.0


class AutosaveScheduler:
    def __init__(
        self,
        persist: PersistFn,
        *,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        log_extra: Mapping[str, object] | None = None,
    ) -> None:
        self._persist = persist
        self._quiet_period = quiet_period
        self._log_extra = dict(log_extra or {})

        self._latest: dict[str, Any] = {}
        self._dirty = False
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._follow_up = False
        self._closed = False

    @property
    def pending(self) -> bool:
        """A debounce timer is armed."""
        return self._timer is not None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def dirty(self) -> bool:
        """The latest answer set has not been persisted yet."""
        return self._dirty

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self, answers: Mapping[str, Any]) -> None:
        if self._closed:
            logger.debug("Ignoring edit on closed autosave", extra=self._log_extra)
            return

        self._latest = dict(answers)
        self._dirty = True
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._quiet_period, self._on_quiet)

    async def flush_now(self) -> bool:
        """Persist the latest answers now and wait for it.

        Returns True when the latest answer set is durable afterwards.
        """
        self._cancel_timer()
        task = self._request_persist()
        if task is not None:
            # The write belongs to the session, not to whoever is waiting.
            await asyncio.shield(task)
        return not self._dirty

    def flush_on_exit(self) -> asyncio.Task[None] | None:
        """Start the final persist without waiting for it.

        Stops accepting edits.  Returns the task carrying the final write,
        or None when everything was already saved.  Failures are logged by
        the task itself.
        """
        self._cancel_timer()
        self._closed = True
        return self._request_persist()

    def cancel(self) -> None:
        """Drop the armed timer and any queued follow-up, stop accepting edits.

        A write already in flight is left to finish.
        """
        self._cancel_timer()
        self._follow_up = False
        self._closed = True

    def reopen(self) -> None:
        self._closed = False

    def _on_quiet(self) -> None:
        self._timer = None
        self._request_persist()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _request_persist(self) -> asyncio.Task[None] | None:
        if self.in_flight:
            if self._follow_up:
                AUTOSAVE_COALESCED.inc()
            self._follow_up = True
            return self._task

        if not self._dirty:
            return None

        self._task = asyncio.get_running_loop().create_task(self._drain())
        return self._task

    async def _drain(self) -> None:
        while True:
            self._follow_up = False
            snapshot = self._latest
            self._dirty = False
            try:
                await self._persist(snapshot)
            except Exception:
                # Keep the data dirty so the next cycle or flush retries it.
                self._dirty = True
                AUTOSAVE_WRITES.labels(result="error").inc()
                logger.exception(
                    "Autosave failed; answers kept in memory for the next save",
                    extra=self._log_extra,
                )

            if not (self._follow_up and self._dirty):
                return
