"""
Tests for the analytics orchestration service.

WHY: The service decides which records reach the aggregators: SQL-level
survey and date scoping, in-memory question and tag scoping, abandoned
session exclusion and the completion-time outlier policy.
"""

import logging
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.config import settings
from survey_analytics.core.exceptions import ValidationError
from survey_analytics.services.analytics_service import AnalyticsService
from survey_analytics.services.response_filters import FilterCriteria
from tests.factories import (
    IncompleteResponseFactory,
    QuestionFactory,
    ResponseFactory,
    SurveyFactory,
    answer,
)


NOW = datetime(2024, 1, 7, 12, 0, 0)


def _service(db_session: AsyncSession) -> AnalyticsService:
    return AnalyticsService(db_session, now=lambda: NOW)


async def _seed(db_session: AsyncSession):
    """
    Two surveys, a tagged question bank and a mix of response states.

    Survey A: three completed (one an outlier), one open session, one abandoned
    Survey B: one completed
    """
    survey_a = await SurveyFactory.create(db_session, title="A")
    survey_b = await SurveyFactory.create(db_session, title="B")
    await QuestionFactory.create(db_session, "q1", text="Overall rating", category_tags=["service"])
    await QuestionFactory.create(
        db_session, "q2", text="Would you return?", question_type="choice", category_tags=["loyalty"]
    )

    await ResponseFactory.create(
        db_session, survey_a, [answer("q1", 5), answer("q2", "Yes")],
        created_at=NOW - timedelta(hours=2), completion_time=60, engagement_score=80,
        device_type="mobile",
    )
    await ResponseFactory.create(
        db_session, survey_a, [answer("q1", 3)],
        created_at=NOW - timedelta(days=1), completion_time=180, engagement_score=60,
    )
    await ResponseFactory.create(
        db_session, survey_a, [answer("q2", "No")],
        created_at=NOW - timedelta(days=2), completion_time=9000,
    )
    await IncompleteResponseFactory.create(
        db_session, survey_a, respondent_id="open", responses=[answer("q1", 4)],
        started_at=NOW - timedelta(hours=1), device_type="tablet",
    )
    await IncompleteResponseFactory.create(
        db_session, survey_a, respondent_id="gone", responses=[answer("q1", 1)],
        started_at=NOW - timedelta(hours=3), is_abandoned=True,
    )
    await ResponseFactory.create(
        db_session, survey_b, [answer("q1", 1)],
        created_at=NOW - timedelta(days=10), completion_time=120,
    )
    return survey_a, survey_b


class TestAnalyticsService:

    @pytest.mark.asyncio
    async def test_kpis_exclude_abandoned_and_outliers(self, db_session: AsyncSession):
        survey_a, _ = await _seed(db_session)

        kpis = await _service(db_session).get_kpis(FilterCriteria.from_params(survey_ids=[survey_a.id]))

        assert kpis["completed_responses"] == 3
        assert kpis["incomplete_responses"] == 1
        assert kpis["completion_rate"] == 75
        assert kpis["average_engagement_score"] == 70.0
        # 9000 seconds is beyond the 7200 second outlier threshold
        assert kpis["average_completion_time_minutes"] == 2.0
        assert kpis["participation_basis"] == "respondents_only"

    @pytest.mark.asyncio
    async def test_date_filter(self, db_session: AsyncSession):
        await _seed(db_session)
        criteria = FilterCriteria.from_params(start_date=NOW - timedelta(days=1, hours=1))

        kpis = await _service(db_session).get_kpis(criteria)

        assert kpis["completed_responses"] == 2
        assert kpis["incomplete_responses"] == 1

    @pytest.mark.asyncio
    async def test_tag_filter_uses_question_bank(self, db_session: AsyncSession):
        await _seed(db_session)
        criteria = FilterCriteria.from_params(tag_ids=["loyalty"])
        service = _service(db_session)

        kpis = await service.get_kpis(criteria)
        performance = await service.get_question_performance(criteria)

        assert kpis["total_responses"] == 2
        assert [record["question_id"] for record in performance] == ["q2"]
        assert performance[0]["question_text"] == "Would you return?"
        assert performance[0]["question_type"] == "multiple_choice"

    @pytest.mark.asyncio
    async def test_question_performance_all(self, db_session: AsyncSession):
        survey_a, _ = await _seed(db_session)

        performance = await _service(db_session).get_question_performance(
            FilterCriteria.from_params(survey_ids=[survey_a.id])
        )

        assert [record["question_id"] for record in performance] == ["q1", "q2"]
        q1 = performance[0]
        assert q1["response_count"] == 3
        assert q1["question_type"] == "likert"
        assert q1["average_score"] == 4.0
        assert q1["sentiment"] == "positive"

    @pytest.mark.asyncio
    async def test_trends_and_breakdowns(self, db_session: AsyncSession):
        await _seed(db_session)
        service = _service(db_session)
        criteria = FilterCriteria()

        trends = await service.get_response_trends(criteria, days=3)
        times = await service.get_completion_time_trends(criteria, days=3)
        devices = await service.get_device_usage(criteria)

        assert trends == [
            {"date": "2024-01-05", "responses": 1, "completions": 1},
            {"date": "2024-01-06", "responses": 1, "completions": 1},
            {"date": "2024-01-07", "responses": 2, "completions": 1},
        ]
        assert [point["minutes"] for point in times] == [None, 3.0, 1.0]
        assert {row["device"]: row["count"] for row in devices} == {
            "desktop": 3,
            "tablet": 1,
            "mobile": 1,
        }

    @pytest.mark.asyncio
    async def test_survey_summary_ignores_date_filter(self, db_session: AsyncSession):
        survey_a, survey_b = await _seed(db_session)
        criteria = FilterCriteria.from_params(start_date=NOW)

        summary = await _service(db_session).get_survey_summary(criteria)

        assert summary["total_surveys"] == 2
        assert summary["active_surveys"] == 2
        assert summary["completed_responses"] == 4
        assert summary["incomplete_responses"] == 1
        assert summary["responses_by_survey"] == {survey_a.id: 4, survey_b.id: 1}
        assert summary["recent"]["completed_responses"] == 3

    @pytest.mark.asyncio
    async def test_dashboard_uses_one_snapshot(self, db_session: AsyncSession):
        await _seed(db_session)

        dashboard = await _service(db_session).get_dashboard(FilterCriteria(), days=7)

        assert set(dashboard) == {
            "kpis",
            "question_performance",
            "response_trends",
            "completion_time_trends",
            "response_rate_trends",
            "device_usage",
            "participation",
            "sections",
        }
        assert dashboard["kpis"]["total_responses"] == 5
        assert len(dashboard["response_trends"]) == 7

    @pytest.mark.asyncio
    async def test_participation_by_site(self, db_session: AsyncSession):
        survey = await SurveyFactory.create(db_session)
        await ResponseFactory.create(db_session, survey, created_at=NOW, demographics={"site": "Corporate"})
        await ResponseFactory.create(db_session, survey, created_at=NOW, demographics={"site": "Corporate"})
        await ResponseFactory.create(db_session, survey, created_at=NOW)
        await IncompleteResponseFactory.create(db_session, survey, started_at=NOW)
        service = _service(db_session)

        rows = await service.get_participation(FilterCriteria(), "site")
        dashboard = await service.get_dashboard(FilterCriteria())

        assert rows == [
            {"value": "Corporate", "total": 2, "completed": 2, "pending": 0, "rate": 100},
            {"value": "unknown", "total": 2, "completed": 1, "pending": 1, "rate": 50},
        ]
        assert dashboard["participation"] == rows

    @pytest.mark.asyncio
    async def test_participation_rejects_unknown_field(self, db_session: AsyncSession):
        with pytest.raises(ValidationError):
            await _service(db_session).get_participation(FilterCriteria(), "salary")

    @pytest.mark.asyncio
    async def test_empty_database(self, db_session: AsyncSession):
        dashboard = await _service(db_session).get_dashboard(FilterCriteria(), days=2)

        assert dashboard["kpis"]["total_responses"] == 0
        assert dashboard["question_performance"] == []
        assert dashboard["completion_time_trends"] == [
            {"date": "2024-01-06", "minutes": None, "samples": 0},
            {"date": "2024-01-07", "minutes": None, "samples": 0},
        ]


class TestRecordCap:
    """Behaviour when ANALYTICS_MAX_RECORDS limits the rows loaded."""

    @pytest.mark.asyncio
    async def test_cap_keeps_newest_records_and_warns(
        self, db_session: AsyncSession, monkeypatch, caplog
    ):
        """
        WHY: Dropping the newest rows would empty the trend window and skew
        every KPI towards stale data.
        """
        survey = await SurveyFactory.create(db_session)
        await ResponseFactory.create(
            db_session, survey, [answer("q1", 1)], created_at=NOW - timedelta(days=300)
        )
        await ResponseFactory.create(
            db_session, survey, [answer("q1", 5)], created_at=NOW - timedelta(hours=1)
        )
        monkeypatch.setattr(settings, "ANALYTICS_MAX_RECORDS", 1)

        with caplog.at_level(logging.WARNING, logger="survey_analytics.services.analytics_service"):
            trends = await _service(db_session).get_response_trends(FilterCriteria(), days=7)

        assert trends[-1] == {"date": "2024-01-07", "responses": 1, "completions": 1}
        assert any("record cap of 1 reached" in message for message in caplog.messages)

    @pytest.mark.asyncio
    async def test_no_warning_below_cap(self, db_session: AsyncSession, monkeypatch, caplog):
        survey = await SurveyFactory.create(db_session)
        await ResponseFactory.create(db_session, survey, created_at=NOW)
        monkeypatch.setattr(settings, "ANALYTICS_MAX_RECORDS", 10)

        with caplog.at_level(logging.WARNING, logger="survey_analytics.services.analytics_service"):
            kpis = await _service(db_session).get_kpis(FilterCriteria())

        assert kpis["completed_responses"] == 1
        assert not any("record cap" in message for message in caplog.messages)
