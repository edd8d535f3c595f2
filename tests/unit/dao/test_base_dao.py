"""
Tests for the generic BaseDAO operations.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.dao.survey import SurveyResponseDAO
from tests.factories import ResponseFactory, SurveyFactory


class TestBaseDAO:

    @pytest.mark.asyncio
    async def test_filters_count_and_exists(self, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        other = await SurveyFactory.create(db_session, title="Other")
        await ResponseFactory.create(db_session, survey)
        await ResponseFactory.create(db_session, survey)
        await ResponseFactory.create(db_session, other)
        dao = SurveyResponseDAO(db_session)

        assert await dao.count() == 3
        assert await dao.count(survey_id=survey.id) == 2
        assert len(await dao.get_all(survey_id=other.id)) == 1
        assert len(await dao.get_all(skip=1, limit=1)) == 1
        assert await dao.exists(survey_id=other.id) is True
        assert await dao.exists(survey_id=9999) is False

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        response = await ResponseFactory.create(db_session, survey)
        dao = SurveyResponseDAO(db_session)

        updated = await dao.update(response.id, progress=40)

        assert updated.progress == 40
        assert await dao.update(9999, progress=1) is None
        assert await dao.delete(response.id) is True
        assert await dao.delete(response.id) is False
        assert await dao.get_by_id(response.id) is None
