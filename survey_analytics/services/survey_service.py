"""
Survey Service.

WHAT: Business logic for managing survey definitions.

WHY: Surveys scope every analytics query and gate response collection
(only published surveys accept responses). Survey building itself
(questions, branching) is handled by the survey builder; this service only
manages the metadata analytics depend on.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.exceptions import SurveyNotFoundError, ValidationError
from survey_analytics.dao.survey import SurveyDAO
from survey_analytics.models.survey import Survey
from survey_analytics.services.response_filters import to_utc_naive


logger = logging.getLogger(__name__)


class SurveyService:
    """
    Service for survey operations.

    Args:
        session: Async database session
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.survey_dao = SurveyDAO(session)

    async def create_survey(
        self,
        title: str,
        created_by_id: Optional[int] = None,
        description: Optional[str] = None,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None,
        tag_ids: Optional[List[str]] = None,
        published: bool = False,
    ) -> Survey:
        """
        Create a new survey.

        Raises:
            ValidationError: If the end date isn't after the start date
        """
        starts_at = to_utc_naive(starts_at)
        ends_at = to_utc_naive(ends_at)
        if starts_at and ends_at and starts_at >= ends_at:
            raise ValidationError(
                message="End date must be after start date",
                starts_at=starts_at.isoformat(),
                ends_at=ends_at.isoformat(),
            )

        survey = await self.survey_dao.create(
            title=title,
            description=description,
            created_by_id=created_by_id,
            starts_at=starts_at,
            ends_at=ends_at,
            tag_ids=[str(tag) for tag in tag_ids or []],
            published=published,
        )
        logger.info(f"Survey {survey.id} created by user {created_by_id}")
        return survey

    async def get_survey(self, survey_id: int) -> Survey:
        """
        Get a survey by ID.

        Raises:
            SurveyNotFoundError: If survey doesn't exist
        """
        survey = await self.survey_dao.get_by_id(survey_id)
        if not survey:
            raise SurveyNotFoundError(survey_id=survey_id)
        return survey

    async def list_surveys(
        self,
        published: Optional[bool] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Survey]:
        return await self.survey_dao.list_surveys(published=published, skip=skip, limit=limit)

    async def publish_survey(self, survey_id: int) -> Survey:
        """
        Publish a survey so it accepts responses.

        Raises:
            SurveyNotFoundError: If survey doesn't exist
        """
        survey = await self.survey_dao.publish_survey(survey_id)
        if not survey:
            raise SurveyNotFoundError(survey_id=survey_id)
        logger.info(f"Survey {survey_id} published")
        return survey
