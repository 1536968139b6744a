from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal
from uuid import UUID, uuid4

SubmissionStatus = Literal["in_progress", "completed"]

IN_PROGRESS: SubmissionStatus = "in_progress"
COMPLETED: SubmissionStatus = "completed"


def now_epoch() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def now_iso() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


@dataclass(frozen=True, slots=True)
class Response:
    """One captured answer.

    timestamp is the ISO-8601 capture time of the batch this response was
    saved in, not the time the learner first typed it.
    """

    question_id: str
    value: Any
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "value": self.value,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Response:
        return Response(
            question_id=str(data.get("questionId") or ""),
            value=data.get("value"),
            timestamp=str(data.get("timestamp") or ""),
        )


@dataclass(frozen=True, slots=True)
class Submission:
    """One user's attempt at one assessment.

    status is monotonic: once completed it never returns to in_progress.
    """

    id: UUID
    user_id: str
    assessment_id: str
    responses: tuple[Response, ...] = ()
    percent_complete: int = 0
    status: SubmissionStatus = IN_PROGRESS
    created_at: int = 0
    updated_at: int | None = None
    completed_at: int | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED

    @staticmethod
    def new(
        *,
        user_id: str,
        assessment_id: str,
        responses: Iterable[Response] = (),
        status: SubmissionStatus = IN_PROGRESS,
    ) -> Submission:
        now = now_epoch()
        return Submission(
            id=uuid4(),
            user_id=user_id,
            assessment_id=assessment_id,
            responses=tuple(responses),
            status=status,
            percent_complete=100 if status == COMPLETED else 0,
            created_at=now,
            completed_at=now if status == COMPLETED else None,
        )


def responses_from_answers(
    answers: Mapping[str, Any], captured_at: str | None = None
) -> tuple[Response, ...]:
    """Turn a renderer value map into a response batch sharing one timestamp."""
    stamp = captured_at or now_iso()
    return tuple(
        Response(question_id=question_id, value=value, timestamp=stamp)
        for question_id, value in answers.items()
    )
