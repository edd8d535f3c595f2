"""
Per-question performance aggregation.

WHAT: Builds one performance record per question observed in a set of
completed and in-progress responses: answer distribution, average score,
sentiment and engagement indicators.

WHY: The dashboard's question table is the main tool analysts use to find
weak questions. It has to work on whatever data exists: questions missing
from the question bank still get a record, unknown types are inferred from
the answers, and engagement indicators fall back to documented estimates
when per-question timing was never captured.

HOW: One pass over all answer items accumulates counters per question id
(in first-seen order), then each tally is turned into a record and the list
is sorted by response count, most answered first.

Placeholder estimates (flagged with metrics_estimated=True):
- avg_time_spent = 30 seconds when no item carried time_spent
- skip_rate = 0 when no item carried a skipped flag
"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from survey_analytics.services.question_resolver import (
    LIKERT,
    MULTIPLE_CHOICE,
    OPEN_TEXT,
    UNKNOWN,
    resolve_question_text,
    resolve_question_type,
)
from survey_analytics.services.response_filters import (
    FilterCriteria,
    QuestionTags,
    answer_items,
    is_numeric_answer,
    item_matches,
    parse_number,
    percentage,
    round_half_up,
    stringify_answer,
)


logger = logging.getLogger(__name__)


ESTIMATED_TIME_SPENT_SECONDS = 30.0
BASE_ENGAGEMENT = 75
ENGAGEMENT_PER_SCORE_POINT = 5


@dataclass
class AnswerShare:
    """One row of a question's answer distribution."""

    value: str
    count: int
    percentage: int


@dataclass
class QuestionPerformance:
    """Performance record for a single question."""

    question_id: str
    question_text: str
    question_type: str
    response_count: int
    average_score: float
    sentiment: str
    answers: List[AnswerShare]
    avg_time_spent: float
    skip_rate: int
    completion_rate: int
    engagement_score: int
    response_quality: str
    metrics_estimated: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _QuestionTally:
    response_count: int = 0
    answer_counts: Counter = field(default_factory=Counter)
    total_score: float = 0.0
    score_count: int = 0
    time_total: float = 0.0
    time_count: int = 0
    skip_flags: int = 0
    skipped: int = 0


def sentiment_for(average_score: float, score_count: int) -> str:
    """positive at >= 4, negative at <= 2, else neutral; neutral without scores."""
    if score_count == 0:
        return "neutral"
    if average_score >= 4:
        return "positive"
    if average_score <= 2:
        return "negative"
    return "neutral"


def response_quality_for(engagement_score: float, completion_rate: float) -> str:
    if engagement_score > 85 and completion_rate > 95:
        return "high"
    if engagement_score < 60 or completion_rate < 80:
        return "low"
    return "medium"


def infer_question_type(answer_values: Iterable[str]) -> str:
    """
    Infer a question type from the distinct stringified answers.

    - all numeric, at most 7 distinct values, each <= 7 -> likert
    - any non-numeric value -> multiple_choice
    - more than 10 distinct values -> open_text
    - otherwise (or no answers) -> unknown
    """
    values = list(answer_values)
    if not values:
        return UNKNOWN

    numbers = [parse_number(value) for value in values]
    all_numeric = all(number is not None for number in numbers)

    if all_numeric and len(values) <= 7 and all(number <= 7 for number in numbers):
        return LIKERT
    if not all_numeric:
        return MULTIPLE_CHOICE
    if len(values) > 10:
        return OPEN_TEXT
    return UNKNOWN


def format_distribution(answer_counts: Mapping[str, int], response_count: int) -> List[AnswerShare]:
    """
    Distribution rows with percentages relative to response_count.

    Sorted numerically when every value parses as a number, otherwise
    lexicographically.
    """
    values = list(answer_counts)
    numbers = {value: parse_number(value) for value in values}

    if values and all(number is not None for number in numbers.values()):
        ordered = sorted(values, key=lambda value: (numbers[value], value))
    else:
        ordered = sorted(values)

    return [
        AnswerShare(
            value=value,
            count=answer_counts[value],
            percentage=percentage(answer_counts[value], response_count),
        )
        for value in ordered
    ]


class QuestionPerformanceAggregator:
    """
    Aggregate answers into per-question performance records.

    Args:
        completed_responses: Completed response records
        incomplete_responses: In-progress response records
        questions: Question id -> question document (may be partial)
        criteria: Optional filter; only matching answers are aggregated
        question_tags: Question id -> category tags, for tag filtering
    """

    def __init__(
        self,
        completed_responses: Iterable[Any],
        incomplete_responses: Iterable[Any] = (),
        questions: Optional[Mapping[str, Any]] = None,
        criteria: Optional[FilterCriteria] = None,
        question_tags: Optional[QuestionTags] = None,
    ):
        self.completed_responses = list(completed_responses)
        self.incomplete_responses = list(incomplete_responses)
        self.questions = questions or {}
        self.criteria = criteria or FilterCriteria()
        self.question_tags = question_tags or {}

    def _tally(self) -> Dict[str, _QuestionTally]:
        tallies: Dict[str, _QuestionTally] = {}

        for record in self.completed_responses + self.incomplete_responses:
            for item in answer_items(record):
                if not item_matches(item, self.criteria, self.question_tags):
                    continue

                tally = tallies.setdefault(item.question_id, _QuestionTally())
                tally.response_count += 1

                if item.answer is not None:
                    tally.answer_counts[stringify_answer(item.answer)] += 1
                if is_numeric_answer(item.answer):
                    tally.total_score += item.answer
                    tally.score_count += 1
                if item.time_spent is not None:
                    tally.time_total += item.time_spent
                    tally.time_count += 1
                if item.skipped is not None:
                    tally.skip_flags += 1
                    if item.skipped:
                        tally.skipped += 1

        return tallies

    def _build(self, question_id: str, tally: _QuestionTally) -> QuestionPerformance:
        question = self.questions.get(question_id)

        question_type = resolve_question_type(question, question_id)
        if question_type is None:
            question_type = infer_question_type(tally.answer_counts)

        average_score = (
            round_half_up(tally.total_score / tally.score_count, 1) if tally.score_count else 0.0
        )

        estimated = False
        if tally.time_count:
            avg_time_spent = round_half_up(tally.time_total / tally.time_count, 1)
        else:
            avg_time_spent = ESTIMATED_TIME_SPENT_SECONDS
            estimated = True

        if tally.skip_flags:
            skip_rate = percentage(tally.skipped, tally.response_count)
        else:
            skip_rate = 0
            estimated = True

        completion_rate = 100 - skip_rate
        engagement_score = round_half_up(BASE_ENGAGEMENT + average_score * ENGAGEMENT_PER_SCORE_POINT)

        return QuestionPerformance(
            question_id=question_id,
            question_text=resolve_question_text(question, question_id),
            question_type=question_type,
            response_count=tally.response_count,
            average_score=float(average_score),
            sentiment=sentiment_for(average_score, tally.score_count),
            answers=format_distribution(tally.answer_counts, tally.response_count),
            avg_time_spent=float(avg_time_spent),
            skip_rate=skip_rate,
            completion_rate=completion_rate,
            engagement_score=engagement_score,
            response_quality=response_quality_for(engagement_score, completion_rate),
            metrics_estimated=estimated,
        )

    def compute(self) -> List[QuestionPerformance]:
        """
        Build performance records, most answered question first.

        Ties keep first-seen order.
        """
        tallies = self._tally()
        records = [self._build(question_id, tally) for question_id, tally in tallies.items()]
        records.sort(key=lambda record: record.response_count, reverse=True)

        logger.debug(
            f"Question performance computed for {len(records)} questions from "
            f"{len(self.completed_responses)} completed and "
            f"{len(self.incomplete_responses)} incomplete responses"
        )
        return records
