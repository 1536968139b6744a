from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace

import pytest

from assessment_service.models.submission import (
    COMPLETED,
    IN_PROGRESS,
    Response,
    responses_from_answers,
)
from assessment_service.repos.submission_repo import (
    InMemorySubmissionRepo,
    SubmissionRepo,
)
from assessment_service.services.errors import SubmissionNotFoundError


def test_in_memory_repo_satisfies_protocol() -> None:
    assert isinstance(InMemorySubmissionRepo(), SubmissionRepo)


def test_find_returns_none_for_unknown_pair() -> None:
    repo = InMemorySubmissionRepo()
    assert asyncio.run(repo.find("learner", "a1")) is None


def test_create_is_find_or_create_for_in_progress() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        first = await repo.create("learner", "a1")
        second = await repo.create("learner", "a1")
        return first, second

    first, second = asyncio.run(scenario())
    assert first.id == second.id
    assert first.status == IN_PROGRESS
    assert first.created_at > 0


def test_update_writes_responses_and_percent_atomically() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        s = await repo.create("learner", "a1")
        applied = await repo.update(
            s.id,
            responses=responses_from_answers({"q1": "a"}, "2026-01-01T00:00:00+00:00"),
            percent_complete=50,
        )
        return applied, await repo.get(s.id)

    applied, stored = asyncio.run(scenario())
    assert applied is True
    assert stored.percent_complete == 50
    assert stored.responses == (
        Response(question_id="q1", value="a", timestamp="2026-01-01T00:00:00+00:00"),
    )
    assert stored.updated_at is not None


def test_update_after_completion_is_rejected() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        s = await repo.create("learner", "a1")
        await repo.complete(s.id, responses_from_answers({"q1": "final"}))
        applied = await repo.update(
            s.id, responses=responses_from_answers({"q1": "late"}), percent_complete=10
        )
        return applied, await repo.get(s.id)

    applied, stored = asyncio.run(scenario())
    assert applied is False
    assert stored.status == COMPLETED
    assert stored.percent_complete == 100
    assert stored.responses[0].value == "final"


def test_complete_twice_applies_once() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        s = await repo.create("learner", "a1")
        first = await repo.complete(s.id, responses_from_answers({"q1": "a"}))
        completed_at = (await repo.get(s.id)).completed_at
        second = await repo.complete(s.id, responses_from_answers({"q1": "b"}))
        return first, second, completed_at, await repo.get(s.id)

    first, second, completed_at, stored = asyncio.run(scenario())
    assert (first, second) == (True, False)
    assert stored.completed_at == completed_at
    assert stored.responses[0].value == "a"


def test_unknown_submission_raises() -> None:
    repo = InMemorySubmissionRepo()
    with pytest.raises(SubmissionNotFoundError):
        asyncio.run(repo.update(uuid.uuid4(), responses=(), percent_complete=0))
    with pytest.raises(SubmissionNotFoundError):
        asyncio.run(repo.complete(uuid.uuid4(), ()))


def test_completed_then_new_attempt_keeps_history() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        s = await repo.create("learner", "a1")
        await repo.complete(s.id, ())
        retake = await repo.create("learner", "a1")
        return s, retake, await repo.find("learner", "a1")

    original, retake, found = asyncio.run(scenario())
    assert retake.id != original.id
    assert found.id == retake.id


def test_list_for_user_is_scoped_and_newest_first() -> None:
    async def scenario():
        repo = InMemorySubmissionRepo()
        older = await repo.create("learner", "a1")
        newer = await repo.create("learner", "a2")
        await repo.create("someone-else", "a1")
        await repo.complete(newer.id, ())
        # Force distinct timestamps regardless of clock resolution.
        repo._by_id[older.id] = replace(older, created_at=1)
        return await repo.list_for_user("learner"), newer

    listed, newer = asyncio.run(scenario())
    assert [s.user_id for s in listed] == ["learner", "learner"]
    assert listed[0].id == newer.id
