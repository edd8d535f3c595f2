"""
Survey Response API Routes.

WHAT: FastAPI router for the response lifecycle.

WHY: Respondents save answers as they go (in-progress sessions) and
submit once at the end; the submission replaces the session. Admins can
correct or delete completed responses afterwards.

HOW: Session and submit endpoints accept anonymous callers and attribute
the submission to the user when a valid token is sent. Correction
endpoints require ADMIN.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.deps import get_optional_user, require_admin
from survey_analytics.core.exceptions import SessionNotFoundError
from survey_analytics.db.session import get_db
from survey_analytics.models.user import User
from survey_analytics.schemas.response import (
    AnswerRequest,
    ResponseRead,
    ResponseSubmitRequest,
    ResponseSubmitResult,
    ResponseUpdateRequest,
    SessionRead,
    SessionStartRequest,
    SessionStartResponse,
)
from survey_analytics.services.response_service import ResponseService


router = APIRouter(prefix="/responses", tags=["responses"])


# ============================================================================
# In-progress sessions (respondents)
# ============================================================================


@router.post(
    "/sessions",
    response_model=SessionStartResponse,
    summary="Start or resume a session",
    description="""
    Start a respondent's session for a published survey, or resume the
    open one. Resuming clears an abandoned flag.
    """,
)
async def start_session(
    request: SessionStartRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionStartResponse:
    """
    Start or resume a session.

    Returns 201 when a session was created and 200 when resumed.
    """
    response_session, created = await ResponseService(db).start_session(
        survey_id=request.survey_id,
        respondent_id=request.respondent_id,
        device_type=request.device_type,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return SessionStartResponse(session=SessionRead.model_validate(response_session), created=created)


@router.put(
    "/sessions/{session_id}/answers",
    response_model=SessionRead,
    summary="Save an answer",
    description="Insert or replace the answer to one question in a session.",
)
async def record_answer(
    session_id: int,
    request: AnswerRequest,
    db: AsyncSession = Depends(get_db),
) -> SessionRead:
    response_session = await ResponseService(db).record_answer(
        session_id=session_id,
        question_id=request.question_id,
        answer=request.answer,
        section_id=request.section_id,
        time_spent=request.time_spent,
        skipped=request.skipped,
        engagement_score=request.engagement_score,
    )
    return SessionRead.model_validate(response_session)


@router.post(
    "/sessions/{session_id}/abandon",
    response_model=SessionRead,
    summary="Abandon a session",
)
async def abandon_session(
    session_id: int,
    db: AsyncSession = Depends(get_db),
) -> SessionRead:
    service = ResponseService(db)
    if not await service.mark_abandoned(session_id):
        raise SessionNotFoundError(session_id=session_id)
    return SessionRead.model_validate(await service.get_session(session_id))


# ============================================================================
# Submission
# ============================================================================


@router.post(
    "/submit",
    response_model=ResponseSubmitResult,
    summary="Submit a completed response",
    description="""
    Submit a completed response.

    When session_id is given the session's saved answers are merged with
    the submitted ones (submitted answers win) and the session is removed.
    Submitting a session that was already promoted returns the earlier
    response with created=false.
    """,
)
async def submit_response(
    request: ResponseSubmitRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
) -> ResponseSubmitResult:
    submitted, created = await ResponseService(db).submit_response(
        survey_id=request.survey_id,
        responses=[item.to_item() for item in request.responses],
        respondent_id=request.respondent_id,
        session_id=request.session_id,
        user_id=current_user.id if current_user else None,
        start_time=request.start_time,
        end_time=request.end_time,
        progress=request.progress,
        metadata=request.metadata,
        demographics=request.demographics,
        section_times=request.section_times,
        engagement_score=request.engagement_score,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ResponseSubmitResult(response=ResponseRead.model_validate(submitted), created=created)


# ============================================================================
# Administrative corrections
# ============================================================================


@router.get(
    "/{response_id}",
    response_model=ResponseRead,
    summary="Get a completed response",
)
async def get_response(
    response_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ResponseRead:
    return ResponseRead.model_validate(await ResponseService(db).get_response(response_id))


@router.patch(
    "/{response_id}",
    response_model=ResponseRead,
    summary="Correct a completed response",
    description="**Admin only**. completion_time is recomputed when start or end time changes.",
)
async def update_response(
    response_id: int,
    request: ResponseUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ResponseRead:
    updated = await ResponseService(db).update_response(
        response_id, current_user, **request.to_fields()
    )
    return ResponseRead.model_validate(updated)


@router.delete(
    "/{response_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a completed response",
    description="**Admin only**.",
)
async def delete_response(
    response_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Response:
    await ResponseService(db).delete_response(response_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
