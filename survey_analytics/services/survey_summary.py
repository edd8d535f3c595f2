"""
Survey-level summary KPIs.

WHAT: Survey counts, responses joined to surveys by id and a recent-activity
completion rate.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from survey_analytics.models.base import utc_now
from survey_analytics.services.response_filters import (
    COMPLETED_DATE_FIELDS,
    INCOMPLETE_DATE_FIELDS,
    percentage,
    record_value,
    to_utc_naive,
)


def is_survey_active(survey: Any, now: datetime) -> bool:
    """Published and with no end date, or an end date still in the future."""
    if not record_value(survey, "published"):
        return False
    ends_at = to_utc_naive(record_value(survey, "ends_at", "end_date", "endDate"))
    return ends_at is None or ends_at > now


def _as_id(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _response_survey(record: Any) -> Optional[int]:
    return _as_id(record_value(record, "survey_id", "surveyId"))


def survey_summary(
    surveys: Iterable[Any],
    completed_responses: Iterable[Any],
    incomplete_responses: Iterable[Any] = (),
    recent_days: int = 7,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Summarise surveys and the responses that belong to them.

    Responses whose survey id is not among the given surveys are ignored.
    The recent block covers completed responses created, and sessions
    started, within the last recent_days days.

    Returns:
        Dict with total_surveys, active_surveys, response counts,
        avg_completion, responses_by_survey and a recent block
    """
    now = now or utc_now()
    surveys = list(surveys)
    survey_ids = {_as_id(record_value(survey, "id")) for survey in surveys} - {None}

    completed = [r for r in completed_responses if _response_survey(r) in survey_ids]
    incomplete = [r for r in incomplete_responses if _response_survey(r) in survey_ids]

    responses_by_survey = {survey_id: 0 for survey_id in sorted(survey_ids)}
    for record in completed + incomplete:
        responses_by_survey[_response_survey(record)] += 1

    cutoff = now - timedelta(days=recent_days)

    def _recent(record: Any, fields) -> bool:
        moment = to_utc_naive(record_value(record, *fields))
        return moment is not None and moment >= cutoff

    recent_completed = sum(1 for r in completed if _recent(r, COMPLETED_DATE_FIELDS))
    recent_incomplete = sum(1 for r in incomplete if _recent(r, INCOMPLETE_DATE_FIELDS))

    return {
        "total_surveys": len(surveys),
        "active_surveys": sum(1 for survey in surveys if is_survey_active(survey, now)),
        "total_responses": len(completed) + len(incomplete),
        "completed_responses": len(completed),
        "incomplete_responses": len(incomplete),
        "avg_completion": percentage(len(completed), len(completed) + len(incomplete)),
        "responses_by_survey": responses_by_survey,
        "recent": {
            "days": recent_days,
            "completed_responses": recent_completed,
            "incomplete_responses": recent_incomplete,
            "avg_completion": percentage(recent_completed, recent_completed + recent_incomplete),
        },
    }
