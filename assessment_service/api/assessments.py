"""Assessment catalog and the live-session endpoints the form talks to.

Session sequence:
  Client -> POST   /v1/assessments/{id}/session          (enter: find-or-create)
         -> PUT    /v1/assessments/{id}/session/answers  (every edit, debounced)
         -> POST   /v1/assessments/{id}/session/save     (manual save)
         -> POST   /v1/assessments/{id}/session/complete (finish exactly once, closes session)
         -> DELETE /v1/assessments/{id}/session          (leave, best-effort flush)
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from assessment_service.api.dependencies import (
    require_assessment,
    require_session,
    require_user,
)
from assessment_service.api.schemas import SubmissionOut
from assessment_service.models.assessment import Assessment
from assessment_service.models.principal import Principal
from assessment_service.services.backends import catalog, session_registry
from assessment_service.services.errors import CompletionError, InitializationError
from assessment_service.services.lifecycle import SubmissionLifecycleController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/assessments", tags=["assessments"])


# --- Pydantic schemas ---


class QuestionOut(BaseModel):
    id: str
    title: str
    kind: str
    required: bool


class SectionOut(BaseModel):
    name: str
    title: str
    questions: list[QuestionOut]


class AssessmentSummaryOut(BaseModel):
    id: str
    title: str
    description: str
    category: str
    estimated_time: int
    total_questions: int


class AssessmentOut(AssessmentSummaryOut):
    sections: list[SectionOut]


class SessionOut(BaseModel):
    submission: SubmissionOut
    answers: dict[str, Any]
    total_questions: int


class AnswersIn(BaseModel):
    answers: dict[str, Any]


class CompleteIn(BaseModel):
    answers: dict[str, Any] | None = None


class AutosaveAcceptedOut(BaseModel):
    status: str
    percent_complete: int


class SaveOut(BaseModel):
    saved: bool
    submission: SubmissionOut


def _summary(a: Assessment) -> AssessmentSummaryOut:
    return AssessmentSummaryOut(
        id=a.id,
        title=a.title,
        description=a.description,
        category=a.category,
        estimated_time=a.estimated_time,
        total_questions=a.total_questions,
    )


def _detail(a: Assessment) -> AssessmentOut:
    return AssessmentOut(
        **_summary(a).model_dump(),
        sections=[
            SectionOut(
                name=s.name,
                title=s.title,
                questions=[
                    QuestionOut(id=q.id, title=q.title, kind=q.kind, required=q.required)
                    for q in s.questions
                ],
            )
            for s in a.sections
        ],
    )


# --- Catalog ---


@router.get("", response_model=list[AssessmentSummaryOut])
async def list_assessments(
    _principal: Annotated[Principal, Depends(require_user)],
) -> list[AssessmentSummaryOut]:
    return [_summary(a) for a in await catalog.list()]


@router.get("/{assessment_id}", response_model=AssessmentOut)
async def get_assessment(
    _principal: Annotated[Principal, Depends(require_user)],
    assessment: Annotated[Assessment, Depends(require_assessment)],
) -> AssessmentOut:
    return _detail(assessment)


# --- Session ---


@router.post("/{assessment_id}/session", response_model=SessionOut)
async def enter_session(
    principal: Annotated[Principal, Depends(require_user)],
    assessment: Annotated[Assessment, Depends(require_assessment)],
) -> SessionOut:
    try:
        controller = await session_registry.enter(principal.user_id, assessment)
    except InitializationError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from None

    return SessionOut(
        submission=SubmissionOut.from_submission(controller.submission),
        answers=controller.answers,
        total_questions=assessment.total_questions,
    )


@router.put(
    "/{assessment_id}/session/answers",
    response_model=AutosaveAcceptedOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def change_answers(
    payload: AnswersIn,
    controller: Annotated[SubmissionLifecycleController, Depends(require_session)],
) -> AutosaveAcceptedOut:
    controller.notify(payload.answers)
    return AutosaveAcceptedOut(
        status=controller.status,
        percent_complete=controller.submission.percent_complete,
    )


@router.post("/{assessment_id}/session/save", response_model=SaveOut)
async def save_session(
    controller: Annotated[SubmissionLifecycleController, Depends(require_session)],
) -> SaveOut:
    saved = await controller.save()
    if not saved:
        logger.warning(
            "Manual save did not persist",
            extra={"submission_id": str(controller.submission.id)},
        )
    return SaveOut(
        saved=saved, submission=SubmissionOut.from_submission(controller.submission)
    )


@router.post("/{assessment_id}/session/complete", response_model=SubmissionOut)
async def complete_session(
    payload: CompleteIn,
    principal: Annotated[Principal, Depends(require_user)],
    assessment: Annotated[Assessment, Depends(require_assessment)],
) -> SubmissionOut:
    try:
        submission = await session_registry.complete(
            principal.user_id, assessment.id, payload.answers
        )
    except CompletionError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from None
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="no open session for this assessment; enter it first",
        )
    return SubmissionOut.from_submission(submission)


@router.delete("/{assessment_id}/session", status_code=status.HTTP_204_NO_CONTENT)
async def leave_session(
    assessment_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    if not session_registry.leave(principal.user_id, assessment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="no open session for this assessment",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
