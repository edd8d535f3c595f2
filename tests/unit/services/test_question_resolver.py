"""
Tests for question text, type and tag resolution.

WHY: Question documents come from several generations of the survey
builder; the lookup order decides what the dashboard shows.
"""

from survey_analytics.models.question import Question
from survey_analytics.services.question_resolver import (
    LIKERT,
    MULTIPLE_CHOICE,
    OPEN_TEXT,
    build_question_tags,
    category_tags,
    current_version,
    normalize_question_type,
    question_text_resolver,
    resolve_question_text,
    resolve_question_type,
)


class TestCurrentVersion:
    """Choosing the current version document."""

    def test_matches_version_number_first(self):
        question = {
            "current_version": 2,
            "versions": [
                {"version": 2, "question_text": "Second"},
                {"version": 1, "question_text": "First"},
            ],
        }
        assert current_version(question)["question_text"] == "Second"

    def test_falls_back_to_positional_index(self):
        question = {
            "current_version": 1,
            "versions": [{"question_text": "A"}, {"question_text": "B"}],
        }
        assert current_version(question)["question_text"] == "B"

    def test_falls_back_to_last_version(self):
        question = {
            "current_version": 9,
            "versions": [{"question_text": "A"}, {"question_text": "B"}],
        }
        assert current_version(question)["question_text"] == "B"
        assert current_version({"versions": [{"question_text": "Only"}]})["question_text"] == "Only"

    def test_no_usable_versions(self):
        assert current_version(None) is None
        assert current_version({"versions": []}) is None
        assert current_version({"versions": "broken"}) is None
        assert current_version({"versions": ["junk"]}) is None

    def test_reads_orm_question(self):
        question = Question(
            id="q1",
            current_version=1,
            versions=[{"version": 1, "question_text": "From ORM"}],
        )
        assert resolve_question_text(question, "q1") == "From ORM"


class TestQuestionText:
    """Display text resolution order."""

    def test_current_version_text_wins(self):
        question = {
            "text": "Legacy",
            "current_version": 1,
            "versions": [{"version": 1, "questionText": "Current"}],
        }
        assert resolve_question_text(question, "q1") == "Current"

    def test_document_text_when_version_has_none(self):
        question = {"text": "Legacy", "versions": [{"version": 1, "question_text": "  "}]}
        assert resolve_question_text(question, "q1") == "Legacy"

    def test_fallback_placeholder(self):
        assert resolve_question_text(None, "q9") == "Question q9"
        assert resolve_question_text({}, "q9") == "Question q9"

    def test_resolution_reports_source(self):
        resolution = question_text_resolver.resolve({"text": "Legacy"}, "q1")
        assert resolution.source == "document"
        assert question_text_resolver.priority == ["current_version", "document"]


class TestQuestionType:
    """Type keyword bucketing."""

    def test_normalize_keywords(self):
        assert normalize_question_type("Likert-5") == LIKERT
        assert normalize_question_type("star_rating") == LIKERT
        assert normalize_question_type("checkbox") == MULTIPLE_CHOICE
        assert normalize_question_type("dropdown") == MULTIPLE_CHOICE
        assert normalize_question_type("single_choice") == MULTIPLE_CHOICE
        assert normalize_question_type("free_text") == OPEN_TEXT
        assert normalize_question_type("matrix") is None
        assert normalize_question_type(None) is None

    def test_first_bucket_wins(self):
        # "rating" and "select" both present: likert bucket is checked first
        assert normalize_question_type("select_rating") == LIKERT

    def test_type_from_alternative_field_names(self):
        question = {"versions": [{"version": 1, "inputType": "Multiple Choice"}]}
        assert resolve_question_type(question) == MULTIPLE_CHOICE

    def test_unresolved_type(self):
        assert resolve_question_type(None) is None
        assert resolve_question_type({"versions": [{"version": 1}]}) is None


class TestCategoryTags:
    """Tags used by the tag filter."""

    def test_tags_from_current_version(self):
        question = {
            "current_version": 2,
            "versions": [
                {"version": 1, "category_tags": ["old"]},
                {"version": 2, "categoryTags": ["t1", 5]},
            ],
        }
        assert category_tags(question) == {"t1", "5"}

    def test_missing_tags(self):
        assert category_tags(None) == set()
        assert category_tags({"versions": [{"version": 1, "category_tags": "t1"}]}) == set()

    def test_build_question_tags(self):
        questions = {
            "q1": {"versions": [{"version": 1, "category_tags": ["t1"]}]},
            "q2": {"versions": []},
        }
        assert build_question_tags(questions) == {"q1": {"t1"}, "q2": set()}
