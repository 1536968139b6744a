from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol, runtime_checkable
from uuid import UUID

from assessment_service.models.submission import (
    COMPLETED,
    IN_PROGRESS,
    Response,
    Submission,
    SubmissionStatus,
    now_epoch,
)
from assessment_service.services.errors import SubmissionNotFoundError


@runtime_checkable
class SubmissionRepo(Protocol):
    async def find(self, user_id: str, assessment_id: str) -> Submission | None:
        """The pair's in-progress submission, else its latest completed one."""
        ...

    async def create(
        self,
        user_id: str,
        assessment_id: str,
        responses: Iterable[Response] = (),
        status: SubmissionStatus = IN_PROGRESS,
    ) -> Submission:
        """Find-or-create: returns the existing in-progress submission if any."""
        ...

    async def get(self, submission_id: UUID) -> Submission | None: ...

    async def update(
        self,
        submission_id: UUID,
        *,
        responses: Iterable[Response],
        percent_complete: int,
    ) -> bool:
        """Write a response batch and its progress together.

        Returns False (and writes nothing) if the submission is completed.
        """
        ...

    async def complete(
        self, submission_id: UUID, responses: Iterable[Response]
    ) -> bool:
        """Terminal write. Returns False if the submission was already completed."""
        ...

    async def list_for_user(self, user_id: str) -> list[Submission]: ...


class InMemorySubmissionRepo:
    """In-memory backend for dev and tests.

    None of the methods suspend between their check and their write, so
    each call is atomic on the event loop.  That is what makes create()
    a find-or-create and update() a conditional write, mirroring the
    partial unique index and WHERE clause of the Postgres repo.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Submission] = {}

    async def find(self, user_id: str, assessment_id: str) -> Submission | None:
        return self._find(user_id, assessment_id)

    async def create(
        self,
        user_id: str,
        assessment_id: str,
        responses: Iterable[Response] = (),
        status: SubmissionStatus = IN_PROGRESS,
    ) -> Submission:
        if status == IN_PROGRESS:
            existing = self._active(user_id, assessment_id)
            if existing is not None:
                return existing

        submission = Submission.new(
            user_id=user_id,
            assessment_id=assessment_id,
            responses=responses,
            status=status,
        )
        self._by_id[submission.id] = submission
        return submission

    async def get(self, submission_id: UUID) -> Submission | None:
        return self._by_id.get(submission_id)

    async def update(
        self,
        submission_id: UUID,
        *,
        responses: Iterable[Response],
        percent_complete: int,
    ) -> bool:
        current = self._require(submission_id)
        if current.status != IN_PROGRESS:
            return False

        self._by_id[submission_id] = replace(
            current,
            responses=tuple(responses),
            percent_complete=percent_complete,
            updated_at=now_epoch(),
        )
        return True

    async def complete(
        self, submission_id: UUID, responses: Iterable[Response]
    ) -> bool:
        current = self._require(submission_id)
        if current.status == COMPLETED:
            return False

        now = now_epoch()
        self._by_id[submission_id] = replace(
            current,
            responses=tuple(responses),
            percent_complete=100,
            status=COMPLETED,
            updated_at=now,
            completed_at=now,
        )
        return True

    async def list_for_user(self, user_id: str) -> list[Submission]:
        owned = [s for s in self._by_id.values() if s.user_id == user_id]
        return sorted(owned, key=_last_touched, reverse=True)

    def _require(self, submission_id: UUID) -> Submission:
        current = self._by_id.get(submission_id)
        if current is None:
            raise SubmissionNotFoundError(f"submission {submission_id} not found")
        return current

    def _active(self, user_id: str, assessment_id: str) -> Submission | None:
        for s in self._by_id.values():
            if (
                s.user_id == user_id
                and s.assessment_id == assessment_id
                and s.status == IN_PROGRESS
            ):
                return s
        return None

    def _find(self, user_id: str, assessment_id: str) -> Submission | None:
        active = self._active(user_id, assessment_id)
        if active is not None:
            return active

        completed = [
            s
            for s in self._by_id.values()
            if s.user_id == user_id and s.assessment_id == assessment_id
        ]
        if not completed:
            return None
        return max(completed, key=_last_touched)


def _last_touched(submission: Submission) -> int:
    return submission.completed_at or submission.updated_at or submission.created_at
