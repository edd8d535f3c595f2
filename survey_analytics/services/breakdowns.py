"""
Device and section breakdowns.

WHAT: Device-class counts across responses, participation per
demographic group, and per-section answer completion and time spent.
"""

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from survey_analytics.models.survey import DeviceType
from survey_analytics.services.response_filters import (
    answer_items,
    is_numeric_answer,
    percentage,
    record_value,
    round_half_up,
)


TABLET_MARKERS = ("ipad", "tablet", "kindle", "silk", "playbook")
MOBILE_MARKERS = ("mobi", "iphone", "ipod", "android", "blackberry", "opera mini", "iemobile")

PARTICIPATION_FIELDS = ("site", "department", "role")
UNKNOWN_GROUP = "unknown"


def detect_device_type(user_agent: Optional[str]) -> str:
    """
    Classify a User-Agent string as desktop, tablet or mobile.

    Android devices without "mobile" in the agent are tablets.
    """
    if not user_agent:
        return DeviceType.DESKTOP.value
    agent = user_agent.lower()
    if any(marker in agent for marker in TABLET_MARKERS):
        return DeviceType.TABLET.value
    if "android" in agent and "mobile" not in agent:
        return DeviceType.TABLET.value
    if any(marker in agent for marker in MOBILE_MARKERS):
        return DeviceType.MOBILE.value
    return DeviceType.DESKTOP.value


def _device_class(value: Any) -> str:
    if isinstance(value, str):
        lowered = value.strip().lower()
        for device in DeviceType:
            if lowered == device.value:
                return device.value
    return DeviceType.DESKTOP.value


def device_usage(
    completed_responses: Iterable[Any],
    incomplete_responses: Iterable[Any] = (),
) -> List[Dict[str, Any]]:
    """
    Count responses per device class.

    Completed responses read metadata.device_type; in-progress sessions read
    their device_type column. Missing or unrecognised values count as desktop.

    Returns:
        [{"device": "desktop", "count": int, "percentage": int}, ...] in
        desktop, tablet, mobile order
    """
    counts: Counter = Counter()

    for record in completed_responses:
        metadata = record_value(record, "response_metadata", "metadata")
        device = record_value(metadata, "device_type", "deviceType") if isinstance(metadata, dict) else None
        counts[_device_class(device)] += 1

    for record in incomplete_responses:
        counts[_device_class(record_value(record, "device_type", "deviceType"))] += 1

    total = sum(counts.values())
    return [
        {
            "device": device.value,
            "count": counts[device.value],
            "percentage": percentage(counts[device.value], total),
        }
        for device in DeviceType
    ]


def _demographic_group(record: Any, field: str) -> str:
    demographics = record_value(record, "demographics")
    value = demographics.get(field) if isinstance(demographics, dict) else None
    if value is None or (isinstance(value, str) and not value.strip()):
        return UNKNOWN_GROUP
    return str(value).strip()


def participation_by(
    completed_responses: Iterable[Any],
    incomplete_responses: Iterable[Any] = (),
    field: str = "site",
) -> List[Dict[str, Any]]:
    """
    Completed and pending responses per demographic group.

    Groups come from each record's demographics mapping (site, department
    or role). Records without a usable value are grouped as "unknown";
    in-progress sessions carry no demographics of their own, so unless a
    record supplies them they land there too.

    Args:
        completed_responses: Completed response records
        incomplete_responses: In-progress session records
        field: One of PARTICIPATION_FIELDS

    Returns:
        [{"value", "total", "completed", "pending", "rate"}, ...] sorted by
        total descending, then value

    Raises:
        ValueError: If field is not a participation field
    """
    if field not in PARTICIPATION_FIELDS:
        raise ValueError(f"Unsupported participation field: {field}")

    completed: Counter = Counter()
    pending: Counter = Counter()
    for record in completed_responses:
        completed[_demographic_group(record, field)] += 1
    for record in incomplete_responses:
        pending[_demographic_group(record, field)] += 1

    groups = set(completed) | set(pending)
    rows = [
        {
            "value": group,
            "total": completed[group] + pending[group],
            "completed": completed[group],
            "pending": pending[group],
            "rate": percentage(completed[group], completed[group] + pending[group]),
        }
        for group in groups
    ]
    return sorted(rows, key=lambda row: (-row["total"], row["value"]))


def _is_answered(answer: Any) -> bool:
    # Zero, empty string, False and None are unanswered
    if answer is None or answer is False or answer == "":
        return False
    if is_numeric_answer(answer):
        return answer != 0
    if isinstance(answer, float) and math.isnan(answer):
        return False
    return True


def section_breakdown(responses: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Per-section answer completion and average time.

    An answer item counts toward its section's total; it counts as completed
    when it holds a non-empty answer. Average time comes from each
    response's section_times mapping (section id -> seconds).

    Returns:
        [{"section_id", "total", "completed", "completion_rate",
          "average_time_seconds"}, ...] sorted by section id
    """
    totals: Counter = Counter()
    answered: Counter = Counter()
    time_totals: Dict[str, float] = {}
    time_counts: Counter = Counter()

    for record in responses:
        for item in answer_items(record):
            if item.section_id is None:
                continue
            totals[item.section_id] += 1
            if _is_answered(item.answer):
                answered[item.section_id] += 1

        section_times = record_value(record, "section_times", "sectionTimes")
        if not isinstance(section_times, dict):
            continue
        for section_id, seconds in section_times.items():
            if not is_numeric_answer(seconds):
                continue
            key = str(section_id)
            time_totals[key] = time_totals.get(key, 0.0) + seconds
            time_counts[key] += 1

    sections = sorted(set(totals) | set(time_totals))
    return [
        {
            "section_id": section_id,
            "total": totals[section_id],
            "completed": answered[section_id],
            "completion_rate": percentage(answered[section_id], totals[section_id]),
            "average_time_seconds": (
                round_half_up(time_totals[section_id] / time_counts[section_id], 1)
                if time_counts[section_id]
                else None
            ),
        }
        for section_id in sections
    ]
