"""
Day-bucketed trend series.

WHAT: Fixed-length daily series ending today (UTC): responses and
completions per day, average completion time per day and completed
submissions per day.

WHY: The dashboard charts need one point per day even for days with no
activity, so empty buckets are created up front and records are dropped
into them. Days are UTC calendar dates; the clock is injectable so series
are reproducible in tests.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from survey_analytics.models.base import utc_now
from survey_analytics.services.response_filters import (
    COMPLETED_DATE_FIELDS,
    INCOMPLETE_DATE_FIELDS,
    day_key,
    is_numeric_answer,
    record_value,
    round_half_up,
)


DEFAULT_WINDOW_DAYS = 7
DEFAULT_OUTLIER_SECONDS = 7200


def window_days(days: int, now: datetime) -> List[str]:
    """
    ISO dates of the window, oldest first, ending with now's date.

    Args:
        days: Number of days (values below 1 yield an empty window)
        now: Reference time (naive UTC)
    """
    today = now.date()
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


class TrendAggregator:
    """
    Build daily trend series from completed and in-progress responses.

    Args:
        completed_responses: Completed response records
        incomplete_responses: In-progress response records
        now: Clock returning naive UTC time; defaults to utc_now
    """

    def __init__(
        self,
        completed_responses: Iterable[Any],
        incomplete_responses: Iterable[Any] = (),
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.completed_responses = list(completed_responses)
        self.incomplete_responses = list(incomplete_responses)
        self._now = now or utc_now

    def _empty_buckets(self, days: int, **fields: Any) -> Dict[str, Dict[str, Any]]:
        return {
            day: {"date": day, **fields}
            for day in window_days(days, self._now())
        }

    def response_trends(self, days: int = DEFAULT_WINDOW_DAYS) -> List[Dict[str, Any]]:
        """
        Responses and completions per day.

        Completed responses count once in both columns on their created_at
        day. In-progress sessions count as a response on their started_at
        day, and as a completion only if flagged is_completed. Records dated
        outside the window, or with no date, are ignored.

        Returns:
            [{"date": "YYYY-MM-DD", "responses": int, "completions": int}, ...]
        """
        buckets = self._empty_buckets(days, responses=0, completions=0)

        for record in self.completed_responses:
            bucket = buckets.get(day_key(record_value(record, *COMPLETED_DATE_FIELDS)))
            if bucket is not None:
                bucket["responses"] += 1
                bucket["completions"] += 1

        for record in self.incomplete_responses:
            bucket = buckets.get(day_key(record_value(record, *INCOMPLETE_DATE_FIELDS)))
            if bucket is not None:
                bucket["responses"] += 1
                if record_value(record, "is_completed", "isCompleted") is True:
                    bucket["completions"] += 1

        return list(buckets.values())

    def completion_time_trends(
        self,
        days: int = DEFAULT_WINDOW_DAYS,
        outlier_seconds: float = DEFAULT_OUTLIER_SECONDS,
    ) -> List[Dict[str, Any]]:
        """
        Average completion time per day, in minutes.

        Only completion times strictly between 0 and outlier_seconds are
        used. Days with no usable data report minutes=None rather than 0 so
        charts can show a gap.

        Returns:
            [{"date": "YYYY-MM-DD", "minutes": float | None, "samples": int}, ...]
        """
        totals: Dict[str, List[float]] = {day: [] for day in window_days(days, self._now())}

        for record in self.completed_responses:
            seconds = record_value(record, "completion_time", "completionTime")
            if not is_numeric_answer(seconds) or not 0 < seconds < outlier_seconds:
                continue
            samples = totals.get(day_key(record_value(record, *COMPLETED_DATE_FIELDS)))
            if samples is not None:
                samples.append(float(seconds))

        return [
            {
                "date": day,
                "minutes": round_half_up(sum(samples) / len(samples) / 60, 1) if samples else None,
                "samples": len(samples),
            }
            for day, samples in totals.items()
        ]

    def response_rate_trends(self, days: int = DEFAULT_WINDOW_DAYS) -> List[Dict[str, Any]]:
        """
        Completed submissions per day.

        Returns:
            [{"date": "YYYY-MM-DD", "count": int}, ...]
        """
        buckets = self._empty_buckets(days, count=0)

        for record in self.completed_responses:
            bucket = buckets.get(day_key(record_value(record, *COMPLETED_DATE_FIELDS)))
            if bucket is not None:
                bucket["count"] += 1

        return list(buckets.values())
