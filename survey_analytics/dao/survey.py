"""
Survey Data Access Object (DAO).

WHAT: Database operations for surveys, completed responses and in-progress
response sessions.

WHY: Analytics push the coarse part of every filter (survey membership and
date range) down to SQL so only candidate records are loaded. Finer
per-answer filtering (question ids, tags) happens in memory because answers
live inside JSON documents.

HOW: Extends BaseDAO with:
- Survey listing and publishing
- Predicate queries over responses (IN, date range, abandoned-absent)
- Session lookups and sweeps for the response lifecycle
"""

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.dao.base import BaseDAO
from survey_analytics.models.survey import (
    Survey,
    SurveyResponse,
    IncompleteSurveyResponse,
)


def _not_abandoned(column):
    """Predicate for a nullable flag where NULL means False."""
    return or_(column.is_(None), column.is_(False))


class SurveyDAO(BaseDAO[Survey]):
    """
    Data Access Object for Survey model.

    WHAT: Provides operations for surveys.
    """

    def __init__(self, session: AsyncSession):
        """Initialize SurveyDAO."""
        super().__init__(Survey, session)

    async def list_surveys(
        self,
        published: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Survey]:
        """
        List surveys, newest first.

        Args:
            published: Optional publish-state filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of surveys
        """
        query = select(Survey)

        if published is not None:
            query = query.where(Survey.published.is_(published))

        query = query.order_by(Survey.created_at.desc(), Survey.id.desc())

        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def get_by_ids(self, survey_ids: Optional[Sequence[int]] = None) -> List[Survey]:
        """
        Get surveys by id, or all surveys when no ids are given.

        Args:
            survey_ids: Survey ids to restrict to; None or empty means all

        Returns:
            List of surveys
        """
        query = select(Survey)
        if survey_ids:
            query = query.where(Survey.id.in_(list(survey_ids)))

        result = await self.session.execute(query.order_by(Survey.id))
        return list(result.scalars().all())

    async def publish_survey(self, survey_id: int) -> Optional[Survey]:
        """
        Publish a survey.

        WHAT: Sets published so the survey accepts responses.

        Args:
            survey_id: Survey ID

        Returns:
            Updated survey, or None if it doesn't exist
        """
        survey = await self.get_by_id(survey_id)
        if not survey:
            return None

        survey.published = True

        await self.session.flush()
        await self.session.refresh(survey)
        return survey


class SurveyResponseDAO(BaseDAO[SurveyResponse]):
    """
    Data Access Object for completed SurveyResponse records.
    """

    def __init__(self, session: AsyncSession):
        """Initialize SurveyResponseDAO."""
        super().__init__(SurveyResponse, session)

    async def find(
        self,
        survey_ids: Optional[Sequence[int]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        respondent_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[SurveyResponse]:
        """
        Find completed responses by survey membership and submission date.

        WHAT: Predicate query used by analytics.

        Args:
            survey_ids: Restrict to these surveys (None or empty = all)
            start_date: Inclusive lower bound on created_at (naive UTC)
            end_date: Inclusive upper bound on created_at (naive UTC)
            respondent_id: Optional respondent filter
            limit: Optional cap on rows loaded; the newest rows are kept

        Returns:
            Matching responses, oldest first
        """
        query = select(SurveyResponse)

        if survey_ids:
            query = query.where(SurveyResponse.survey_id.in_(list(survey_ids)))
        if start_date is not None:
            query = query.where(SurveyResponse.created_at >= start_date)
        if end_date is not None:
            query = query.where(SurveyResponse.created_at <= end_date)
        if respondent_id is not None:
            query = query.where(SurveyResponse.respondent_id == respondent_id)

        if not limit:
            query = query.order_by(SurveyResponse.created_at, SurveyResponse.id)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        # Capped loads keep the newest rows
        query = query.order_by(SurveyResponse.created_at.desc(), SurveyResponse.id.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(reversed(result.scalars().all()))

    async def get_for_respondent(
        self,
        survey_id: int,
        respondent_id: str,
    ) -> Optional[SurveyResponse]:
        """
        Get the most recent completed response of a respondent to a survey.

        WHY: Used to make repeated submissions of the same session idempotent.
        """
        result = await self.session.execute(
            select(SurveyResponse)
            .where(
                SurveyResponse.survey_id == survey_id,
                SurveyResponse.respondent_id == respondent_id,
            )
            .order_by(SurveyResponse.created_at.desc(), SurveyResponse.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class IncompleteSurveyResponseDAO(BaseDAO[IncompleteSurveyResponse]):
    """
    Data Access Object for in-progress response sessions.
    """

    def __init__(self, session: AsyncSession):
        """Initialize IncompleteSurveyResponseDAO."""
        super().__init__(IncompleteSurveyResponse, session)

    async def find(
        self,
        survey_ids: Optional[Sequence[int]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        include_abandoned: bool = False,
        limit: Optional[int] = None,
    ) -> List[IncompleteSurveyResponse]:
        """
        Find sessions by survey membership and start date.

        WHY: Abandoned sessions are excluded by default; a session whose
        is_abandoned flag is absent counts as not abandoned.

        Args:
            survey_ids: Restrict to these surveys (None or empty = all)
            start_date: Inclusive lower bound on started_at (naive UTC)
            end_date: Inclusive upper bound on started_at (naive UTC)
            include_abandoned: Include sessions flagged abandoned
            limit: Optional cap on rows loaded; the newest rows are kept

        Returns:
            Matching sessions, oldest first
        """
        query = select(IncompleteSurveyResponse)

        if survey_ids:
            query = query.where(IncompleteSurveyResponse.survey_id.in_(list(survey_ids)))
        if start_date is not None:
            query = query.where(IncompleteSurveyResponse.started_at >= start_date)
        if end_date is not None:
            query = query.where(IncompleteSurveyResponse.started_at <= end_date)
        if not include_abandoned:
            query = query.where(_not_abandoned(IncompleteSurveyResponse.is_abandoned))

        if not limit:
            query = query.order_by(IncompleteSurveyResponse.started_at, IncompleteSurveyResponse.id)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        # Capped loads keep the newest rows
        query = query.order_by(
            IncompleteSurveyResponse.started_at.desc(), IncompleteSurveyResponse.id.desc()
        ).limit(limit)
        result = await self.session.execute(query)
        return list(reversed(result.scalars().all()))

    async def get_open_session(
        self,
        survey_id: int,
        respondent_id: str,
    ) -> Optional[IncompleteSurveyResponse]:
        """
        Get the respondent's open (not completed) session for a survey.

        Returns:
            Session if one exists
        """
        result = await self.session.execute(
            select(IncompleteSurveyResponse)
            .where(
                IncompleteSurveyResponse.survey_id == survey_id,
                IncompleteSurveyResponse.respondent_id == respondent_id,
                IncompleteSurveyResponse.is_completed.is_(False),
            )
            .order_by(IncompleteSurveyResponse.started_at.desc(), IncompleteSurveyResponse.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_for_respondent(self, survey_id: int, respondent_id: str) -> int:
        """
        Delete every session a respondent has for a survey.

        WHY: Called inside the submission transaction so the completed
        response replaces the session rather than being counted alongside it.

        Returns:
            Number of sessions deleted
        """
        result = await self.session.execute(
            delete(IncompleteSurveyResponse).where(
                IncompleteSurveyResponse.survey_id == survey_id,
                IncompleteSurveyResponse.respondent_id == respondent_id,
            )
        )
        return result.rowcount or 0

    async def abandon_stale(self, cutoff: datetime) -> int:
        """
        Flag open sessions not touched since cutoff as abandoned.

        Args:
            cutoff: Sessions with last_updated_at before this are abandoned

        Returns:
            Number of sessions flagged
        """
        result = await self.session.execute(
            update(IncompleteSurveyResponse)
            .where(
                IncompleteSurveyResponse.is_completed.is_(False),
                _not_abandoned(IncompleteSurveyResponse.is_abandoned),
                IncompleteSurveyResponse.last_updated_at < cutoff,
            )
            .values(is_abandoned=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
