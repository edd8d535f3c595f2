"""
Analytics API endpoints.

WHAT: RESTful API for the survey analytics dashboard.

WHY: Analysts need:
1. Headline KPIs (responses, completion rate, engagement, completion time)
2. Per-question performance to find weak questions
3. Daily trends and device/section breakdowns
4. Participation per site, department or role

HOW: FastAPI router with ADMIN or ANALYST role requirement on all
endpoints. Every endpoint takes the same filter parameters, which are
turned into one FilterCriteria and passed to AnalyticsService.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.deps import require_analytics_access
from survey_analytics.core.exceptions import ValidationError
from survey_analytics.db.session import get_db
from survey_analytics.models.user import User
from survey_analytics.schemas.analytics import (
    CompletionTimePoint,
    DashboardResponse,
    DeviceUsageRow,
    KPIResponse,
    ParticipationRow,
    QuestionPerformanceSchema,
    ResponseTrendPoint,
    SectionRow,
    SurveySummaryResponse,
)
from survey_analytics.services.analytics_service import AnalyticsService
from survey_analytics.services.response_filters import FilterCriteria, to_utc_naive


router = APIRouter(prefix="/analytics", tags=["analytics"])


# ============================================================================
# Filter parameters
# ============================================================================


def _parse_date_param(name: str, value: Optional[str]):
    """
    Parse a date or datetime query parameter.

    A bare YYYY-MM-DD stays a date so an end bound covers the whole day.
    """
    if value is None or value == "":
        return None
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    parsed = to_utc_naive(value)
    if parsed is None:
        raise ValidationError(message=f"Invalid {name}", **{name: value})
    return parsed


async def get_filter_criteria(
    survey_ids: Optional[List[int]] = Query(default=None, description="Restrict to these surveys"),
    tag_ids: Optional[List[str]] = Query(default=None, description="Restrict to questions with these tags"),
    question_ids: Optional[List[str]] = Query(default=None, description="Restrict to these questions"),
    start_date: Optional[str] = Query(default=None, description="Inclusive start (YYYY-MM-DD or ISO datetime)"),
    end_date: Optional[str] = Query(default=None, description="Inclusive end (YYYY-MM-DD or ISO datetime)"),
) -> FilterCriteria:
    """
    Build FilterCriteria from query parameters.

    Raises:
        ValidationError: If a date can't be parsed or the range is inverted
    """
    criteria = FilterCriteria.from_params(
        survey_ids=survey_ids,
        tag_ids=tag_ids,
        question_ids=question_ids,
        start_date=_parse_date_param("start_date", start_date),
        end_date=_parse_date_param("end_date", end_date),
    )
    if criteria.start_date and criteria.end_date and criteria.start_date > criteria.end_date:
        raise ValidationError(
            message="start_date must not be after end_date",
            start_date=start_date,
            end_date=end_date,
        )
    return criteria


DaysQuery = Query(default=None, ge=1, le=366, description="Days in the trend window")


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/kpis",
    response_model=KPIResponse,
    status_code=status.HTTP_200_OK,
    summary="Get response KPIs",
    description="Total responses, completion rate, engagement, completion time and participation",
)
async def get_kpis(
    invited_count: Optional[int] = Query(default=None, ge=1, description="Invitations sent, if known"),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> KPIResponse:
    """
    Get scalar KPIs.

    WHY: Without invited_count the participation rate has no real
    denominator; participation_basis tells clients which case applies.
    """
    service = AnalyticsService(db)
    return KPIResponse(**await service.get_kpis(criteria, invited_count))


@router.get(
    "/question-performance",
    response_model=List[QuestionPerformanceSchema],
    summary="Get question performance",
    description="Per-question answer distribution, score and engagement, most answered first",
)
async def get_question_performance(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[QuestionPerformanceSchema]:
    records = await AnalyticsService(db).get_question_performance(criteria)
    return [QuestionPerformanceSchema(**record) for record in records]


@router.get(
    "/trends",
    response_model=List[ResponseTrendPoint],
    summary="Get response trends",
    description="Responses and completions per UTC day, oldest first",
)
async def get_response_trends(
    days: Optional[int] = DaysQuery,
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[ResponseTrendPoint]:
    points = await AnalyticsService(db).get_response_trends(criteria, days)
    return [ResponseTrendPoint(**point) for point in points]


@router.get(
    "/completion-time",
    response_model=List[CompletionTimePoint],
    summary="Get completion time trend",
    description="Average completion minutes per UTC day; null on days without data",
)
async def get_completion_time_trends(
    days: Optional[int] = DaysQuery,
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[CompletionTimePoint]:
    points = await AnalyticsService(db).get_completion_time_trends(criteria, days)
    return [CompletionTimePoint(**point) for point in points]


@router.get(
    "/device-usage",
    response_model=List[DeviceUsageRow],
    summary="Get device usage",
)
async def get_device_usage(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[DeviceUsageRow]:
    rows = await AnalyticsService(db).get_device_usage(criteria)
    return [DeviceUsageRow(**row) for row in rows]


@router.get(
    "/participation",
    response_model=List[ParticipationRow],
    summary="Get participation breakdown",
    description="Completed and pending responses grouped by a demographics field (site, department or role)",
)
async def get_participation(
    field: str = Query(default="site", description="Demographics field: site, department or role"),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[ParticipationRow]:
    rows = await AnalyticsService(db).get_participation(criteria, field)
    return [ParticipationRow(**row) for row in rows]


@router.get(
    "/sections",
    response_model=List[SectionRow],
    summary="Get section breakdown",
    description="Answer completion and average time per survey section",
)
async def get_section_breakdown(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> List[SectionRow]:
    rows = await AnalyticsService(db).get_section_breakdown(criteria)
    return [SectionRow(**row) for row in rows]


@router.get(
    "/summary",
    response_model=SurveySummaryResponse,
    summary="Get survey summary",
    description="Survey counts and response totals; only survey_ids applies",
)
async def get_survey_summary(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> SurveySummaryResponse:
    return SurveySummaryResponse(**await AnalyticsService(db).get_survey_summary(criteria))


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get full dashboard",
    description="All dashboard views computed from a single data load",
)
async def get_dashboard(
    days: Optional[int] = DaysQuery,
    invited_count: Optional[int] = Query(default=None, ge=1),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    current_user: User = Depends(require_analytics_access),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    return DashboardResponse(
        **await AnalyticsService(db).get_dashboard(criteria, days=days, invited_count=invited_count)
    )
