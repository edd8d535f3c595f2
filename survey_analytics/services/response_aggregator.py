"""
Scalar response KPIs.

WHAT: Counts, rates and averages over a pre-filtered set of completed and
in-progress responses.

WHY: Every KPI tile on the dashboard reduces to one of these numbers. They
are total functions: empty input, missing optional fields and zero
denominators produce 0, never an exception or NaN.
"""

from typing import Any, Dict, Iterable, Optional

from survey_analytics.services.response_filters import (
    is_numeric_answer,
    percentage,
    record_value,
    round_half_up,
)


RESPONDENTS_ONLY = "respondents_only"
INVITED = "invited"


class ResponseAggregator:
    """
    Scalar KPIs over completed and in-progress responses.

    Args:
        completed_responses: Completed response records, already filtered
        incomplete_responses: In-progress response records, already filtered
        outlier_seconds: If given, completion times outside (0, outlier_seconds)
            are left out of average_completion_time_minutes
    """

    def __init__(
        self,
        completed_responses: Iterable[Any],
        incomplete_responses: Iterable[Any] = (),
        outlier_seconds: Optional[float] = None,
    ):
        self.completed_responses = list(completed_responses)
        self.incomplete_responses = list(incomplete_responses)
        self.outlier_seconds = outlier_seconds

    @property
    def completed_count(self) -> int:
        return len(self.completed_responses)

    @property
    def incomplete_count(self) -> int:
        return len(self.incomplete_responses)

    def total_count(self) -> int:
        return self.completed_count + self.incomplete_count

    def completion_rate(self) -> int:
        """Completed share of all responses as a rounded percentage."""
        return percentage(self.completed_count, self.total_count())

    def average_engagement_score(self) -> float:
        """
        Mean engagement_score over records that define one.

        Records without a score are left out of both numerator and
        denominator. Returns 0 when no record has a score.
        """
        scores = [
            record_value(record, "engagement_score", "engagementScore")
            for record in self.completed_responses + self.incomplete_responses
        ]
        scores = [score for score in scores if is_numeric_answer(score)]
        if not scores:
            return 0
        return round_half_up(sum(scores) / len(scores), 1)

    def average_completion_time_minutes(self) -> float:
        """
        Mean completion_time of completed responses, in minutes, 1 decimal.

        Without outlier_seconds every non-null completion time is used.
        """
        times = []
        for record in self.completed_responses:
            seconds = record_value(record, "completion_time", "completionTime")
            if not is_numeric_answer(seconds):
                continue
            if self.outlier_seconds is not None and not 0 < seconds < self.outlier_seconds:
                continue
            times.append(seconds)

        if not times:
            return 0
        return round_half_up(sum(times) / len(times) / 60, 1)

    def participation_rate(self, invited_count: Optional[int] = None) -> int:
        """
        Responses as a percentage of invitations.

        Without an invitation count there is no real denominator, so this is
        100 whenever anyone responded and 0 otherwise. See
        participation_basis() for which case applies.
        """
        if invited_count:
            return percentage(self.total_count(), invited_count)
        return 100 if self.total_count() > 0 else 0

    @staticmethod
    def participation_basis(invited_count: Optional[int] = None) -> str:
        return INVITED if invited_count else RESPONDENTS_ONLY

    def summary(self, invited_count: Optional[int] = None) -> Dict[str, Any]:
        """All KPIs as a JSON-serialisable dict."""
        return {
            "total_responses": self.total_count(),
            "completed_responses": self.completed_count,
            "incomplete_responses": self.incomplete_count,
            "completion_rate": self.completion_rate(),
            "average_engagement_score": self.average_engagement_score(),
            "average_completion_time_minutes": self.average_completion_time_minutes(),
            "participation_rate": self.participation_rate(invited_count),
            "participation_basis": self.participation_basis(invited_count),
        }
