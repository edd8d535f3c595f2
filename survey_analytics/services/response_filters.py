"""
Response filtering and normalisation primitives.

WHAT: The FilterCriteria value object shared by every analytics query, plus
small helpers that read answer items, timestamps and answer values out of
response records.

WHY: Response records come from two tables and from older data with
inconsistent field names (question_id vs questionId, missing answer lists,
timezone-aware vs naive timestamps). Normalising them here means the
aggregators can be simple single-pass loops that never fail on a bad record:
malformed records are skipped or treated as empty, one record at a time.

HOW: All helpers accept either ORM instances or plain mappings, so the
aggregators can be unit tested with dicts.
"""

import json
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union


Number = Union[int, float]


# ============================================================================
# Record access
# ============================================================================


def record_value(record: Any, *names: str, default: Any = None) -> Any:
    """
    Read the first non-None field among names from a record.

    Works on mappings (dict documents) and objects (ORM rows).
    """
    for name in names:
        if isinstance(record, Mapping):
            value = record.get(name)
        else:
            value = getattr(record, name, None)
        if value is not None:
            return value
    return default


@dataclass(frozen=True)
class AnswerItem:
    """One normalised answer inside a response record."""

    question_id: str
    answer: Any = None
    section_id: Optional[str] = None
    time_spent: Optional[float] = None
    skipped: Optional[bool] = None


def answer_items(record: Any) -> List[AnswerItem]:
    """
    Extract normalised answer items from a response record.

    A record whose responses field is not a list contributes nothing. Items
    that are not mappings or have no question id are skipped.
    """
    items = record_value(record, "responses")
    if not isinstance(items, list):
        return []

    normalised = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        question_id = record_value(item, "question_id", "questionId")
        if question_id is None or question_id == "":
            continue

        time_spent = record_value(item, "time_spent", "timeSpent")
        if not is_numeric_answer(time_spent):
            time_spent = None

        skipped = item.get("skipped")
        if not isinstance(skipped, bool):
            skipped = None

        section_id = record_value(item, "section_id", "sectionId")

        normalised.append(
            AnswerItem(
                question_id=str(question_id),
                answer=item.get("answer"),
                section_id=str(section_id) if section_id is not None else None,
                time_spent=float(time_spent) if time_spent is not None else None,
                skipped=skipped,
            )
        )
    return normalised


# ============================================================================
# Values
# ============================================================================


def is_numeric_answer(value: Any) -> bool:
    """True for finite int/float values; booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a stringified answer as a finite number.

    Returns:
        The number, or None if the value isn't numeric text
    """
    if is_numeric_answer(value):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def stringify_answer(answer: Any) -> str:
    """
    Stable string key for an answer value.

    Booleans become "true"/"false", integral floats drop their ".0", lists
    are comma-joined and objects are serialised as sorted JSON.
    """
    if isinstance(answer, bool):
        return "true" if answer else "false"
    if isinstance(answer, float) and answer.is_integer():
        return str(int(answer))
    if isinstance(answer, (int, float)):
        return str(answer)
    if isinstance(answer, str):
        return answer
    if isinstance(answer, (list, tuple)):
        return ",".join(stringify_answer(part) for part in answer)
    if isinstance(answer, Mapping):
        return json.dumps(answer, sort_keys=True, default=str)
    return str(answer)


def round_half_up(value: Number, digits: int = 0) -> Number:
    """
    Round half away from zero.

    WHY: Python's round() uses banker's rounding (round(2.5) == 2). Dashboard
    percentages are expected to round 2.5 up to 3.

    Returns:
        int when digits is 0, otherwise float
    """
    try:
        quantum = Decimal(1).scaleb(-digits)
        rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0 if digits == 0 else 0.0
    return int(rounded) if digits == 0 else float(rounded)


def percentage(part: Number, whole: Number) -> int:
    """Rounded integer percentage; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


# ============================================================================
# Dates
# ============================================================================


def to_utc_naive(value: Any) -> Optional[datetime]:
    """
    Normalise a timestamp to naive UTC.

    Accepts datetimes (aware values are converted to UTC), dates (midnight)
    and ISO-8601 strings. Anything else yields None.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc_naive(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def day_key(value: Any) -> Optional[str]:
    """UTC calendar date (YYYY-MM-DD) of a timestamp, or None."""
    moment = to_utc_naive(value)
    return moment.date().isoformat() if moment else None


# ============================================================================
# Filter criteria
# ============================================================================


def _as_tuple(values: Optional[Iterable[Any]], cast=str) -> Tuple[Any, ...]:
    if not values:
        return ()
    return tuple(cast(value) for value in values if value is not None and value != "")


@dataclass(frozen=True)
class FilterCriteria:
    """
    Filter applied to every analytics query.

    Empty collections and None bounds mean "no restriction". Date bounds are
    inclusive and stored as naive UTC; a bare end date covers that whole day.
    """

    survey_ids: Tuple[int, ...] = ()
    tag_ids: Tuple[str, ...] = ()
    question_ids: Tuple[str, ...] = ()
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_params(
        cls,
        survey_ids: Optional[Sequence[Any]] = None,
        tag_ids: Optional[Sequence[Any]] = None,
        question_ids: Optional[Sequence[Any]] = None,
        start_date: Any = None,
        end_date: Any = None,
    ) -> "FilterCriteria":
        """Build criteria from loosely typed request parameters."""
        start = to_utc_naive(start_date)

        if isinstance(end_date, date) and not isinstance(end_date, datetime):
            end = datetime.combine(end_date, time.max)
        else:
            end = to_utc_naive(end_date)

        return cls(
            survey_ids=_as_tuple(survey_ids, int),
            tag_ids=_as_tuple(tag_ids),
            question_ids=_as_tuple(question_ids),
            start_date=start,
            end_date=end,
        )

    @property
    def restricts_answers(self) -> bool:
        """True when records must contain a matching answer to be in scope."""
        return bool(self.question_ids or self.tag_ids)

    def in_date_range(self, value: Any) -> bool:
        if self.start_date is None and self.end_date is None:
            return True
        moment = to_utc_naive(value)
        if moment is None:
            return False
        if self.start_date is not None and moment < self.start_date:
            return False
        if self.end_date is not None and moment > self.end_date:
            return False
        return True


QuestionTags = Mapping[str, Set[str]]


def item_matches(
    item: AnswerItem,
    criteria: FilterCriteria,
    question_tags: Optional[QuestionTags] = None,
) -> bool:
    """
    Check whether one answer passes the question and tag filters.

    A question matches the tag filter when any of its current-version
    category tags is among the requested tags.
    """
    if criteria.question_ids and item.question_id not in criteria.question_ids:
        return False
    if criteria.tag_ids:
        tags = (question_tags or {}).get(item.question_id) or set()
        if not tags.intersection(criteria.tag_ids):
            return False
    return True


def record_in_scope(
    record: Any,
    criteria: FilterCriteria,
    date_fields: Sequence[str],
    question_tags: Optional[QuestionTags] = None,
) -> bool:
    """
    Check whether a response record falls within the criteria.

    Args:
        record: Completed or incomplete response
        criteria: Active filter
        date_fields: Field names holding the record's date, first wins
        question_tags: Question id -> category tags, for tag filtering
    """
    if criteria.survey_ids:
        survey_id = record_value(record, "survey_id", "surveyId")
        try:
            if int(survey_id) not in criteria.survey_ids:
                return False
        except (TypeError, ValueError):
            return False

    if not criteria.in_date_range(record_value(record, *date_fields)):
        return False

    if criteria.restricts_answers:
        return any(
            item_matches(item, criteria, question_tags) for item in answer_items(record)
        )
    return True


COMPLETED_DATE_FIELDS = ("created_at", "createdAt")
INCOMPLETE_DATE_FIELDS = ("started_at", "startedAt")


def apply_filter(
    completed: Iterable[Any],
    incomplete: Iterable[Any],
    criteria: FilterCriteria,
    question_tags: Optional[QuestionTags] = None,
) -> Tuple[List[Any], List[Any]]:
    """
    Filter both response populations in memory.

    Completed responses are dated by created_at and in-progress sessions by
    started_at.

    Returns:
        (completed_in_scope, incomplete_in_scope)
    """
    kept_completed = [
        record
        for record in completed
        if record_in_scope(record, criteria, COMPLETED_DATE_FIELDS, question_tags)
    ]
    kept_incomplete = [
        record
        for record in incomplete
        if record_in_scope(record, criteria, INCOMPLETE_DATE_FIELDS, question_tags)
    ]
    return kept_completed, kept_incomplete
