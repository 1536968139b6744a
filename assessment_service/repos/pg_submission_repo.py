"""PostgreSQL implementation of SubmissionRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from assessment_service.db.engine import session_scope
from assessment_service.db.tables import SubmissionRow
from assessment_service.models.submission import (
    COMPLETED,
    IN_PROGRESS,
    Response,
    Submission,
    SubmissionStatus,
    now_epoch,
)
from assessment_service.services.errors import SubmissionNotFoundError


class PgSubmissionRepo:
    """Satisfies the SubmissionRepo Protocol using PostgreSQL.

    Takes a session factory rather than a session: autosave writes run
    outside any request, so every call is its own transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find(self, user_id: str, assessment_id: str) -> Submission | None:
        async with session_scope(self._session_factory) as session:
            row = await _select_for_pair(session, user_id, assessment_id)
            return _row_to_submission(row) if row is not None else None

    async def create(
        self,
        user_id: str,
        assessment_id: str,
        responses: Iterable[Response] = (),
        status: SubmissionStatus = IN_PROGRESS,
    ) -> Submission:
        now = now_epoch()
        payload = [r.to_dict() for r in responses]
        completed = status == COMPLETED
        stmt = insert(SubmissionRow).values(
            id=uuid4(),
            user_id=user_id,
            assessment_id=assessment_id,
            responses=payload,
            percent_complete=100 if completed else 0,
            status=status,
            created_at=now,
            completed_at=now if completed else None,
        )
        if not completed:
            # A concurrent entry may have inserted the draft first; the
            # partial unique index turns our insert into a no-op and the
            # select below returns the winner.
            stmt = stmt.on_conflict_do_nothing(
                index_elements=["user_id", "assessment_id"],
                index_where=SubmissionRow.status == IN_PROGRESS,
            )
        stmt = stmt.returning(SubmissionRow.id)

        async with session_scope(self._session_factory) as session:
            inserted_id = (await session.execute(stmt)).scalar_one_or_none()
            if inserted_id is not None:
                row = await session.get(SubmissionRow, inserted_id)
            else:
                row = await _select_active(session, user_id, assessment_id)
            if row is None:
                raise SubmissionNotFoundError(
                    f"submission for {user_id}/{assessment_id} vanished after insert"
                )
            return _row_to_submission(row)

    async def get(self, submission_id: UUID) -> Submission | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(SubmissionRow, submission_id)
            return _row_to_submission(row) if row is not None else None

    async def update(
        self,
        submission_id: UUID,
        *,
        responses: Iterable[Response],
        percent_complete: int,
    ) -> bool:
        stmt = (
            update(SubmissionRow)
            .where(SubmissionRow.id == submission_id)
            .where(SubmissionRow.status == IN_PROGRESS)
            .values(
                responses=[r.to_dict() for r in responses],
                percent_complete=percent_complete,
                updated_at=now_epoch(),
            )
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await _require_exists(session, submission_id)
                return False  # completed: late autosave rejected
            return True

    async def complete(
        self, submission_id: UUID, responses: Iterable[Response]
    ) -> bool:
        now = now_epoch()
        stmt = (
            update(SubmissionRow)
            .where(SubmissionRow.id == submission_id)
            .where(SubmissionRow.status == IN_PROGRESS)
            .values(
                responses=[r.to_dict() for r in responses],
                percent_complete=100,
                status=COMPLETED,
                updated_at=now,
                completed_at=now,
            )
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await _require_exists(session, submission_id)
                return False  # already completed
            return True

    async def list_for_user(self, user_id: str) -> list[Submission]:
        stmt = (
            select(SubmissionRow)
            .where(SubmissionRow.user_id == user_id)
            .order_by(_last_touched().desc())
        )
        async with session_scope(self._session_factory) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_submission(r) for r in rows]


def _last_touched():
    return func.coalesce(
        SubmissionRow.completed_at, SubmissionRow.updated_at, SubmissionRow.created_at
    )


async def _select_active(
    session: AsyncSession, user_id: str, assessment_id: str
) -> SubmissionRow | None:
    stmt = select(SubmissionRow).where(
        SubmissionRow.user_id == user_id,
        SubmissionRow.assessment_id == assessment_id,
        SubmissionRow.status == IN_PROGRESS,
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def _select_for_pair(
    session: AsyncSession, user_id: str, assessment_id: str
) -> SubmissionRow | None:
    # in_progress sorts before completed, then newest first
    stmt = (
        select(SubmissionRow)
        .where(
            SubmissionRow.user_id == user_id,
            SubmissionRow.assessment_id == assessment_id,
        )
        .order_by(SubmissionRow.status.desc(), _last_touched().desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def _require_exists(session: AsyncSession, submission_id: UUID) -> None:
    stmt = select(SubmissionRow.id).where(SubmissionRow.id == submission_id)
    if (await session.execute(stmt)).scalar_one_or_none() is None:
        raise SubmissionNotFoundError(f"submission {submission_id} not found")


def _row_to_submission(row: SubmissionRow) -> Submission:
    return Submission(
        id=row.id,
        user_id=row.user_id,
        assessment_id=row.assessment_id,
        responses=tuple(Response.from_dict(r) for r in row.responses or ()),
        percent_complete=row.percent_complete,
        status=row.status,  # type: ignore[arg-type]
        created_at=row.created_at,
        updated_at=row.updated_at,
        completed_at=row.completed_at,
    )
