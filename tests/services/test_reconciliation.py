from __future__ import annotations

import asyncio
import uuid

from prometheus_client import REGISTRY

from assessment_service.models.submission import COMPLETED, Response, Submission
from assessment_service.repos.submission_repo import InMemorySubmissionRepo
from assessment_service.services.reconciliation import ReconciliationLoader, rehydrate


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_enter_creates_when_nothing_exists() -> None:
    before = _sample("submission_entries_total", {"result": "created"})
    repo = InMemorySubmissionRepo()
    submission = asyncio.run(ReconciliationLoader(repo, "learner").enter("a1"))
    assert submission.user_id == "learner"
    assert submission.assessment_id == "a1"
    assert submission.responses == ()
    assert submission.percent_complete == 0
    assert _sample("submission_entries_total", {"result": "created"}) - before == 1


def test_enter_twice_yields_same_submission() -> None:
    async def scenario() -> tuple[Submission, Submission, int]:
        repo = InMemorySubmissionRepo()
        loader = ReconciliationLoader(repo, "learner")
        first = await loader.enter("a1")
        second = await loader.enter("a1")
        return first, second, len(repo._by_id)

    first, second, stored = asyncio.run(scenario())
    assert first.id == second.id
    assert stored == 1


def test_concurrent_entries_create_one_submission() -> None:
    async def scenario() -> tuple[set, int]:
        repo = InMemorySubmissionRepo()
        loader = ReconciliationLoader(repo, "learner")
        results = await asyncio.gather(*(loader.enter("a1") for _ in range(5)))
        return {s.id for s in results}, len(repo._by_id)

    ids, stored = asyncio.run(scenario())
    assert len(ids) == 1
    assert stored == 1


def test_create_hook_runs_only_when_a_submission_is_created() -> None:
    created: list[Submission] = []

    async def on_create(submission: Submission) -> None:
        created.append(submission)

    async def scenario() -> Submission:
        repo = InMemorySubmissionRepo()
        loader = ReconciliationLoader(repo, "learner", on_create=on_create)
        first = await loader.enter("a1")
        await loader.enter("a1")
        return first

    first = asyncio.run(scenario())
    assert [s.id for s in created] == [first.id]


def test_failing_create_hook_does_not_fail_entry() -> None:
    async def on_create(submission: Submission) -> None:
        raise ConnectionError("redis down")

    repo = InMemorySubmissionRepo()
    loader = ReconciliationLoader(repo, "learner", on_create=on_create)
    submission = asyncio.run(loader.enter("a1"))
    assert submission.assessment_id == "a1"

def test_enter_is_scoped_to_the_user() -> None:
    async def scenario() -> tuple[Submission, Submission]:
        repo = InMemorySubmissionRepo()
        mine = await ReconciliationLoader(repo, "alice").enter("a1")
        theirs = await ReconciliationLoader(repo, "bob").enter("a1")
        return mine, theirs

    mine, theirs = asyncio.run(scenario())
    assert mine.id != theirs.id


def test_enter_resumes_completed_submission() -> None:
    async def scenario() -> Submission:
        repo = InMemorySubmissionRepo()
        loader = ReconciliationLoader(repo, "learner")
        first = await loader.enter("a1")
        await repo.complete(first.id, ())
        return await loader.enter("a1")

    assert asyncio.run(scenario()).status == COMPLETED


def test_rehydrate_builds_value_map() -> None:
    submission = Submission(
        id=uuid.uuid4(),
        user_id="learner",
        assessment_id="a1",
        responses=(
            Response(question_id="q1", value="first", timestamp="t1"),
            Response(question_id="q2", value=0, timestamp="t1"),
            Response(question_id="q1", value="second", timestamp="t2"),
            Response(question_id="", value="orphan", timestamp="t2"),
        ),
    )
    assert rehydrate(submission) == {"q1": "second", "q2": 0}
