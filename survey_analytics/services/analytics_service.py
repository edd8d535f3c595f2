"""
Analytics Service.

WHAT: Request-scoped orchestration of the analytics dashboard: loads the
candidate documents for a filter, narrows them in memory and hands them to
the aggregators.

WHY: The aggregators are pure and synchronous so they can be tested with
plain dicts. This service owns everything around them:
1. Pushing survey and date filters down to SQL
2. Loading the question bank for text/type/tag resolution
3. Applying question and tag filters that SQL can't express on JSON answers
4. Applying the configured completion-time outlier policy

HOW: Every public method builds an AnalyticsSnapshot (one load per request)
and calls one aggregator. get_dashboard builds a single snapshot and runs
them all.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.config import settings
from survey_analytics.core.exceptions import AnalyticsError, ValidationError
from survey_analytics.dao.question import QuestionDAO
from survey_analytics.dao.survey import (
    IncompleteSurveyResponseDAO,
    SurveyDAO,
    SurveyResponseDAO,
)
from survey_analytics.models.base import utc_now
from survey_analytics.services.breakdowns import (
    PARTICIPATION_FIELDS,
    device_usage,
    participation_by,
    section_breakdown,
)
from survey_analytics.services.question_performance import QuestionPerformanceAggregator
from survey_analytics.services.question_resolver import build_question_tags
from survey_analytics.services.response_aggregator import ResponseAggregator
from survey_analytics.services.response_filters import (
    FilterCriteria,
    answer_items,
    apply_filter,
)
from survey_analytics.services.survey_summary import survey_summary
from survey_analytics.services.trend_aggregator import TrendAggregator


logger = logging.getLogger(__name__)


@dataclass
class AnalyticsSnapshot:
    """Filtered records and reference data for one analytics request."""

    criteria: FilterCriteria
    completed: List[Any] = field(default_factory=list)
    incomplete: List[Any] = field(default_factory=list)
    questions: Dict[str, Any] = field(default_factory=dict)
    question_tags: Dict[str, Any] = field(default_factory=dict)


class AnalyticsService:
    """
    Service for dashboard analytics.

    Args:
        session: Async database session
        now: Clock returning naive UTC time (injectable for tests)
    """

    def __init__(self, session: AsyncSession, now: Optional[Callable[[], datetime]] = None):
        self.session = session
        self.survey_dao = SurveyDAO(session)
        self.response_dao = SurveyResponseDAO(session)
        self.incomplete_dao = IncompleteSurveyResponseDAO(session)
        self.question_dao = QuestionDAO(session)
        self._now = now or utc_now

    # =========================================================================
    # Loading
    # =========================================================================

    async def load_snapshot(self, criteria: FilterCriteria) -> AnalyticsSnapshot:
        """
        Load and filter the records an analytics request works on.

        WHAT: Survey and date predicates run in SQL; question/tag predicates
        run in memory after the question bank is loaded.

        Raises:
            AnalyticsError: If the database query fails
        """
        try:
            completed = await self.response_dao.find(
                survey_ids=criteria.survey_ids,
                start_date=criteria.start_date,
                end_date=criteria.end_date,
                limit=settings.ANALYTICS_MAX_RECORDS,
            )
            incomplete = await self.incomplete_dao.find(
                survey_ids=criteria.survey_ids,
                start_date=criteria.start_date,
                end_date=criteria.end_date,
                limit=settings.ANALYTICS_MAX_RECORDS,
            )

            question_ids = {
                item.question_id
                for record in completed + incomplete
                for item in answer_items(record)
            }
            questions = await self.question_dao.get_map(question_ids)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load analytics data: {e}")
            raise AnalyticsError(message="Failed to load analytics data")

        cap = settings.ANALYTICS_MAX_RECORDS
        if cap and (len(completed) >= cap or len(incomplete) >= cap):
            logger.warning(
                f"Analytics record cap of {cap} reached ({len(completed)} completed, "
                f"{len(incomplete)} incomplete loaded); older records are left out"
            )

        question_tags = build_question_tags(questions)
        completed, incomplete = apply_filter(completed, incomplete, criteria, question_tags)

        logger.info(
            f"Analytics snapshot: {len(completed)} completed, {len(incomplete)} incomplete, "
            f"{len(questions)} questions (surveys={list(criteria.survey_ids) or 'all'})"
        )

        return AnalyticsSnapshot(
            criteria=criteria,
            completed=completed,
            incomplete=incomplete,
            questions=questions,
            question_tags=question_tags,
        )

    # =========================================================================
    # Individual views
    # =========================================================================

    def _kpis(self, snapshot: AnalyticsSnapshot, invited_count: Optional[int]) -> Dict[str, Any]:
        aggregator = ResponseAggregator(
            snapshot.completed,
            snapshot.incomplete,
            outlier_seconds=settings.COMPLETION_TIME_OUTLIER_SECONDS,
        )
        return aggregator.summary(invited_count)

    def _question_performance(self, snapshot: AnalyticsSnapshot) -> List[Dict[str, Any]]:
        aggregator = QuestionPerformanceAggregator(
            snapshot.completed,
            snapshot.incomplete,
            questions=snapshot.questions,
            criteria=snapshot.criteria,
            question_tags=snapshot.question_tags,
        )
        return [record.to_dict() for record in aggregator.compute()]

    def _trends(self, snapshot: AnalyticsSnapshot) -> TrendAggregator:
        return TrendAggregator(snapshot.completed, snapshot.incomplete, now=self._now)

    async def get_kpis(
        self, criteria: FilterCriteria, invited_count: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Scalar KPIs for the filter.

        Args:
            criteria: Active filter
            invited_count: Number of invitations sent, if known

        Returns:
            Dict of KPI values (see ResponseAggregator.summary)
        """
        return self._kpis(await self.load_snapshot(criteria), invited_count)

    async def get_question_performance(self, criteria: FilterCriteria) -> List[Dict[str, Any]]:
        """Per-question performance records, most answered first."""
        return self._question_performance(await self.load_snapshot(criteria))

    async def get_response_trends(
        self, criteria: FilterCriteria, days: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Daily responses and completions for the last `days` days."""
        snapshot = await self.load_snapshot(criteria)
        return self._trends(snapshot).response_trends(days or settings.TREND_WINDOW_DAYS)

    async def get_completion_time_trends(
        self, criteria: FilterCriteria, days: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Daily average completion time (minutes) for the last `days` days."""
        snapshot = await self.load_snapshot(criteria)
        return self._trends(snapshot).completion_time_trends(
            days or settings.TREND_WINDOW_DAYS,
            outlier_seconds=settings.COMPLETION_TIME_OUTLIER_SECONDS,
        )

    async def get_device_usage(self, criteria: FilterCriteria) -> List[Dict[str, Any]]:
        snapshot = await self.load_snapshot(criteria)
        return device_usage(snapshot.completed, snapshot.incomplete)

    async def get_participation(
        self, criteria: FilterCriteria, field: str = "site"
    ) -> List[Dict[str, Any]]:
        """
        Completed and pending responses per site, department or role.

        Raises:
            ValidationError: If field is not site, department or role
        """
        if field not in PARTICIPATION_FIELDS:
            raise ValidationError(
                message=f"Participation field must be one of: {', '.join(PARTICIPATION_FIELDS)}",
                field=field,
            )
        snapshot = await self.load_snapshot(criteria)
        return participation_by(snapshot.completed, snapshot.incomplete, field)

    async def get_section_breakdown(self, criteria: FilterCriteria) -> List[Dict[str, Any]]:
        """Section completion and timing over completed responses."""
        snapshot = await self.load_snapshot(criteria)
        return section_breakdown(snapshot.completed)

    async def get_survey_summary(self, criteria: FilterCriteria) -> Dict[str, Any]:
        """
        Survey counts and response totals.

        WHY: Unlike the other views this is keyed on surveys, so only the
        survey filter applies; date and question filters are ignored.
        """
        try:
            surveys = await self.survey_dao.get_by_ids(criteria.survey_ids)
            survey_ids = [survey.id for survey in surveys]
            completed = await self.response_dao.find(survey_ids=survey_ids) if survey_ids else []
            incomplete = await self.incomplete_dao.find(survey_ids=survey_ids) if survey_ids else []
        except SQLAlchemyError as e:
            logger.error(f"Failed to load survey summary: {e}")
            raise AnalyticsError(message="Failed to load survey summary")

        return survey_summary(
            surveys,
            completed,
            incomplete,
            recent_days=settings.TREND_WINDOW_DAYS,
            now=self._now(),
        )

    async def get_dashboard(
        self,
        criteria: FilterCriteria,
        days: Optional[int] = None,
        invited_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Every dashboard view computed from one snapshot.

        Returns:
            Dict with kpis, question_performance, response_trends,
            completion_time_trends, response_rate_trends, device_usage,
            participation (by site) and sections
        """
        days = days or settings.TREND_WINDOW_DAYS
        snapshot = await self.load_snapshot(criteria)
        trends = self._trends(snapshot)

        return {
            "kpis": self._kpis(snapshot, invited_count),
            "question_performance": self._question_performance(snapshot),
            "response_trends": trends.response_trends(days),
            "completion_time_trends": trends.completion_time_trends(
                days, outlier_seconds=settings.COMPLETION_TIME_OUTLIER_SECONDS
            ),
            "response_rate_trends": trends.response_rate_trends(days),
            "device_usage": device_usage(snapshot.completed, snapshot.incomplete),
            "participation": participation_by(snapshot.completed, snapshot.incomplete, "site"),
            "sections": section_breakdown(snapshot.completed),
        }
