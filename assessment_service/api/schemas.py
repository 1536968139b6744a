from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from assessment_service.models.submission import Submission


class ResponseOut(BaseModel):
    question_id: str = Field(serialization_alias="questionId")
    value: Any
    timestamp: str


class SubmissionOut(BaseModel):
    id: str
    assessment_id: str
    responses: list[ResponseOut]
    percent_complete: int
    status: str
    created_at: int
    updated_at: int | None = None
    completed_at: int | None = None

    @staticmethod
    def from_submission(s: Submission) -> SubmissionOut:
        return SubmissionOut(
            id=str(s.id),
            assessment_id=s.assessment_id,
            responses=[
                ResponseOut(question_id=r.question_id, value=r.value, timestamp=r.timestamp)
                for r in s.responses
            ],
            percent_complete=s.percent_complete,
            status=s.status,
            created_at=s.created_at,
            updated_at=s.updated_at,
            completed_at=s.completed_at,
        )
