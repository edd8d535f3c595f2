"""
Tests for survey-level summary KPIs.
"""

from datetime import datetime

from survey_analytics.services.survey_summary import is_survey_active, survey_summary


NOW = datetime(2024, 1, 7, 12, 0, 0)


class TestIsSurveyActive:
    def test_published_without_end(self):
        assert is_survey_active({"published": True, "ends_at": None}, NOW)

    def test_ended_or_unpublished(self):
        assert not is_survey_active({"published": True, "ends_at": datetime(2024, 1, 1)}, NOW)
        assert not is_survey_active({"published": False}, NOW)

    def test_future_end(self):
        assert is_survey_active({"published": True, "ends_at": "2024-02-01T00:00:00Z"}, NOW)


class TestSurveySummary:
    def test_summary(self):
        surveys = [
            {"id": 1, "published": True, "ends_at": None},
            {"id": 2, "published": True, "ends_at": datetime(2024, 1, 1)},
            {"id": 3, "published": False},
        ]
        completed = [
            {"survey_id": 1, "created_at": datetime(2024, 1, 6)},
            {"survey_id": 1, "created_at": datetime(2023, 12, 1)},
            {"survey_id": 99, "created_at": datetime(2024, 1, 6)},
        ]
        incomplete = [{"survey_id": 2, "started_at": datetime(2024, 1, 5)}]

        summary = survey_summary(surveys, completed, incomplete, recent_days=7, now=NOW)

        assert summary["total_surveys"] == 3
        assert summary["active_surveys"] == 1
        assert summary["total_responses"] == 3
        assert summary["completed_responses"] == 2
        assert summary["incomplete_responses"] == 1
        assert summary["avg_completion"] == 67
        assert summary["responses_by_survey"] == {1: 2, 2: 1, 3: 0}
        assert summary["recent"] == {
            "days": 7,
            "completed_responses": 1,
            "incomplete_responses": 1,
            "avg_completion": 50,
        }

    def test_no_surveys(self):
        summary = survey_summary([], [{"survey_id": 1, "created_at": NOW}], now=NOW)

        assert summary["total_surveys"] == 0
        assert summary["total_responses"] == 0
        assert summary["avg_completion"] == 0
        assert summary["responses_by_survey"] == {}
