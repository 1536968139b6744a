from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from assessment_service.models.assessment import Assessment
from assessment_service.models.principal import Principal
from assessment_service.services import token_service
from assessment_service.services.backends import catalog, session_registry
from assessment_service.services.lifecycle import SubmissionLifecycleController

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal.from_claims(claims)


async def require_assessment(assessment_id: str) -> Assessment:
    """Resolve the {assessment_id} path parameter against the catalog, or 404."""
    assessment = await catalog.get(assessment_id)
    if assessment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="assessment not found"
        )
    return assessment


def require_session(
    assessment_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SubmissionLifecycleController:
    """The caller's open session for this assessment, or 404 if not entered."""
    controller = session_registry.get(principal.user_id, assessment_id)
    if controller is None:
        logger.warning(
            "No open session for user=%s",
            principal.user_id,
            extra={"assessment_id": assessment_id},
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="no open session for this assessment; enter it first",
        )
    return controller
