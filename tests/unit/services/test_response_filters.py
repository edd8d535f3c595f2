"""
Tests for response filtering and normalisation primitives.

WHY: Every aggregator relies on these helpers to read inconsistent legacy
records without failing, and on FilterCriteria for scoping.
"""

from datetime import date, datetime

from survey_analytics.models.survey import SurveyResponse
from survey_analytics.services.response_filters import (
    FilterCriteria,
    answer_items,
    apply_filter,
    day_key,
    item_matches,
    parse_number,
    percentage,
    record_value,
    round_half_up,
    stringify_answer,
    to_utc_naive,
)


class TestRecordAccess:
    """Reading fields from dicts and ORM objects."""

    def test_record_value_reads_dict_and_object(self):
        response = SurveyResponse(survey_id=3, responses=[])
        assert record_value({"survey_id": 3}, "survey_id") == 3
        assert record_value(response, "survey_id") == 3

    def test_record_value_first_non_none_wins(self):
        record = {"survey_id": None, "surveyId": 7}
        assert record_value(record, "survey_id", "surveyId") == 7
        assert record_value({}, "missing", default="x") == "x"

    def test_answer_items_normalises_legacy_field_names(self):
        record = {
            "responses": [
                {"questionId": 1, "answer": "Yes", "sectionId": "s1", "timeSpent": 12},
                {"question_id": "q2", "answer": 4, "skipped": True},
            ]
        }
        items = answer_items(record)

        assert [item.question_id for item in items] == ["1", "q2"]
        assert items[0].section_id == "s1"
        assert items[0].time_spent == 12.0
        assert items[1].skipped is True

    def test_answer_items_skips_malformed_entries(self):
        record = {"responses": ["junk", {"answer": 1}, {"question_id": "", "answer": 2}, None]}
        assert answer_items(record) == []

    def test_answer_items_non_list_responses_contribute_nothing(self):
        assert answer_items({"responses": {"q1": 1}}) == []
        assert answer_items({"responses": None}) == []

    def test_answer_items_ignores_non_numeric_time_and_non_bool_skip(self):
        items = answer_items(
            {"responses": [{"question_id": "q1", "time_spent": "10", "skipped": "yes"}]}
        )
        assert items[0].time_spent is None
        assert items[0].skipped is None


class TestValues:
    """Answer value helpers."""

    def test_parse_number(self):
        assert parse_number("4") == 4.0
        assert parse_number(" 2.5 ") == 2.5
        assert parse_number(3) == 3.0
        assert parse_number("Yes") is None
        assert parse_number("") is None
        assert parse_number("nan") is None
        assert parse_number(True) is None

    def test_stringify_answer(self):
        assert stringify_answer(True) == "true"
        assert stringify_answer(False) == "false"
        assert stringify_answer(4.0) == "4"
        assert stringify_answer(4.5) == "4.5"
        assert stringify_answer(["a", "b"]) == "a,b"
        assert stringify_answer({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'

    def test_round_half_up_rounds_halves_away_from_zero(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(-2.5) == -3
        assert round_half_up(2.45, 1) == 2.5
        assert isinstance(round_half_up(2.4), int)

    def test_percentage(self):
        assert percentage(1, 3) == 33
        assert percentage(2, 3) == 67
        assert percentage(1, 8) == 13
        assert percentage(5, 0) == 0


class TestDates:
    """Timestamp normalisation."""

    def test_to_utc_naive_converts_aware_values(self):
        assert to_utc_naive("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10)
        assert to_utc_naive("2024-01-01T10:00:00+02:00") == datetime(2024, 1, 1, 8)
        assert to_utc_naive(date(2024, 1, 1)) == datetime(2024, 1, 1)

    def test_to_utc_naive_rejects_garbage(self):
        assert to_utc_naive("not a date") is None
        assert to_utc_naive(12345) is None
        assert to_utc_naive(None) is None

    def test_day_key_uses_utc_date(self):
        assert day_key("2024-01-01T23:30:00-02:00") == "2024-01-02"
        assert day_key(None) is None


class TestFilterCriteria:
    """FilterCriteria construction and matching."""

    def test_bare_end_date_covers_whole_day(self):
        criteria = FilterCriteria.from_params(end_date=date(2024, 1, 31))
        assert criteria.in_date_range(datetime(2024, 1, 31, 23, 59))
        assert not criteria.in_date_range(datetime(2024, 2, 1, 0, 0))

    def test_from_params_normalises_ids(self):
        criteria = FilterCriteria.from_params(survey_ids=["1", 2], question_ids=["q1", "", None])
        assert criteria.survey_ids == (1, 2)
        assert criteria.question_ids == ("q1",)
        assert criteria.restricts_answers

    def test_empty_criteria_accepts_everything(self):
        criteria = FilterCriteria()
        assert criteria.in_date_range(None)
        assert not criteria.restricts_answers

    def test_date_bound_rejects_undated_record(self):
        criteria = FilterCriteria.from_params(start_date="2024-01-01")
        assert not criteria.in_date_range(None)

    def test_item_matches_tag_through_question_tags(self):
        item = answer_items({"responses": [{"question_id": "q1", "answer": 1}]})[0]
        criteria = FilterCriteria.from_params(tag_ids=["t1"])

        assert item_matches(item, criteria, {"q1": {"t1", "t2"}})
        assert not item_matches(item, criteria, {"q1": {"t3"}})
        assert not item_matches(item, criteria, {})


class TestApplyFilter:
    """In-memory filtering of both populations."""

    def test_survey_and_date_scope(self):
        completed = [
            {"survey_id": 1, "created_at": datetime(2024, 1, 2), "responses": []},
            {"survey_id": 2, "created_at": datetime(2024, 1, 2), "responses": []},
            {"survey_id": 1, "created_at": datetime(2023, 12, 31), "responses": []},
        ]
        incomplete = [
            {"survey_id": 1, "started_at": datetime(2024, 1, 3), "responses": []},
            {"survey_id": "bad", "started_at": datetime(2024, 1, 3), "responses": []},
        ]
        criteria = FilterCriteria.from_params(survey_ids=[1], start_date=date(2024, 1, 1))

        kept_completed, kept_incomplete = apply_filter(completed, incomplete, criteria)

        assert kept_completed == [completed[0]]
        assert kept_incomplete == [incomplete[0]]

    def test_question_filter_requires_matching_answer(self):
        completed = [
            {"survey_id": 1, "created_at": datetime(2024, 1, 2),
             "responses": [{"question_id": "q1", "answer": 1}]},
            {"survey_id": 1, "created_at": datetime(2024, 1, 2),
             "responses": [{"question_id": "q2", "answer": 1}]},
        ]
        criteria = FilterCriteria.from_params(question_ids=["q1"])

        kept, _ = apply_filter(completed, [], criteria)

        assert kept == [completed[0]]
