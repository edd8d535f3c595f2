"""
Survey API Routes.

WHAT: FastAPI router for survey management.

WHY: Responses are only accepted for published surveys, and the survey
summary counts a survey as active by its publication and date window.

HOW: Admin-only REST endpoints backed by SurveyService.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.deps import require_admin
from survey_analytics.db.session import get_db
from survey_analytics.models.user import User
from survey_analytics.schemas.survey import (
    SurveyCreateRequest,
    SurveyListResponse,
    SurveyRead,
)
from survey_analytics.services.survey_service import SurveyService


router = APIRouter(prefix="/surveys", tags=["surveys"])


@router.post(
    "",
    response_model=SurveyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create survey",
    description="""
    Create a new survey.

    **Admin only**: Requires ADMIN role.

    A survey accepts responses once published. tag_ids is informational;
    tag filtering in analytics uses question category tags.
    """,
)
async def create_survey(
    request: SurveyCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> SurveyRead:
    """
    Create a new survey.

    Args:
        request: Survey creation data
        db: Database session
        current_user: Authenticated admin user

    Returns:
        Created survey
    """
    survey = await SurveyService(db).create_survey(
        title=request.title,
        created_by_id=current_user.id,
        description=request.description,
        starts_at=request.starts_at,
        ends_at=request.ends_at,
        tag_ids=request.tag_ids,
        published=request.published,
    )
    return SurveyRead.model_validate(survey)


@router.get(
    "",
    response_model=SurveyListResponse,
    summary="List surveys",
)
async def list_surveys(
    published: Optional[bool] = Query(default=None, description="Filter by publication state"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> SurveyListResponse:
    surveys = await SurveyService(db).list_surveys(published=published, skip=skip, limit=limit)
    return SurveyListResponse(
        items=[SurveyRead.model_validate(survey) for survey in surveys],
        skip=skip,
        limit=limit,
    )


@router.get(
    "/{survey_id}",
    response_model=SurveyRead,
    summary="Get survey",
)
async def get_survey(
    survey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> SurveyRead:
    survey = await SurveyService(db).get_survey(survey_id)
    return SurveyRead.model_validate(survey)


@router.post(
    "/{survey_id}/publish",
    response_model=SurveyRead,
    summary="Publish survey",
    description="Publish a survey so respondents can start sessions and submit responses.",
)
async def publish_survey(
    survey_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> SurveyRead:
    survey = await SurveyService(db).publish_survey(survey_id)
    return SurveyRead.model_validate(survey)
