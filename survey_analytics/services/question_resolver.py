"""
Question text and type resolution.

WHAT: Picks a question's current version and resolves its display text,
canonical type and category tags.

WHY: Question documents have been written by several generations of the
survey builder. Text and type may live on the current version under one of
several field names, or directly on the question, or nowhere at all.
Encoding the lookup order as data (an ordered list of sources) keeps the
priority explicit and testable instead of burying it in nested conditionals.

HOW: An OrderedResolver tries each (source, extractor) pair in turn and
returns the first non-empty value together with the name of the source that
produced it, falling back to a default when every source comes up empty.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from survey_analytics.services.response_filters import record_value


Extractor = Callable[[Any], Any]

TEXT_FIELDS = ("question_text", "questionText", "text")
TYPE_FIELDS = (
    "type",
    "question_type",
    "questionType",
    "input_type",
    "inputType",
    "answer_type",
    "answerType",
    "response_type",
    "responseType",
)
TAG_FIELDS = ("category_tags", "categoryTags")

LIKERT = "likert"
MULTIPLE_CHOICE = "multiple_choice"
OPEN_TEXT = "open_text"
UNKNOWN = "unknown"

# First matching bucket wins
TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (LIKERT, ("likert", "rating", "scale")),
    (MULTIPLE_CHOICE, ("multiple", "checkbox", "select", "dropdown", "choice")),
    (OPEN_TEXT, ("text", "open", "input")),
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return not value
    return False


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def current_version(question: Any) -> Optional[Mapping[str, Any]]:
    """
    Pick the current version document of a question.

    Order:
    1. The version whose "version" number equals current_version
    2. current_version as a positional index, if in range
    3. The last version

    Returns:
        Version mapping, or None if the question has no usable versions
    """
    if question is None:
        return None
    versions = record_value(question, "versions")
    if not isinstance(versions, list):
        return None
    versions = [version for version in versions if isinstance(version, Mapping)]
    if not versions:
        return None

    wanted = _as_int(record_value(question, "current_version", "currentVersion"))
    if wanted is not None:
        for version in versions:
            if _as_int(version.get("version")) == wanted:
                return version
        if 0 <= wanted < len(versions):
            return versions[wanted]

    return versions[-1]


@dataclass(frozen=True)
class Resolution:
    """Resolved value and the source it came from."""

    value: Any
    source: str


class OrderedResolver:
    """
    Try value sources in priority order.

    Example:
        resolver = OrderedResolver(
            "text",
            [("current_version", lambda q: ...), ("document", lambda q: ...)],
            fallback=lambda question_id: f"Question {question_id}",
        )
        resolver.resolve(question, "q1").value
    """

    def __init__(
        self,
        name: str,
        sources: Sequence[Tuple[str, Extractor]],
        fallback: Optional[Callable[[str], Any]] = None,
    ):
        self.name = name
        self.sources = list(sources)
        self.fallback = fallback

    def resolve(self, question: Any, question_id: str = "") -> Resolution:
        for source, extractor in self.sources:
            value = extractor(question) if question is not None else None
            if not _is_empty(value):
                return Resolution(value=value, source=source)

        fallback = self.fallback(question_id) if self.fallback else None
        return Resolution(value=fallback, source="fallback")

    @property
    def priority(self) -> List[str]:
        """Source names in the order they are tried."""
        return [source for source, _ in self.sources]


def _from_current_version(fields: Sequence[str]) -> Extractor:
    def extract(question: Any) -> Any:
        version = current_version(question)
        return record_value(version, *fields) if version is not None else None

    return extract


def _from_document(fields: Sequence[str]) -> Extractor:
    def extract(question: Any) -> Any:
        return record_value(question, *fields)

    return extract


question_text_resolver = OrderedResolver(
    "question_text",
    [
        ("current_version", _from_current_version(TEXT_FIELDS)),
        ("document", _from_document(("text", "question", "title"))),
    ],
    fallback=lambda question_id: f"Question {question_id}",
)

question_type_resolver = OrderedResolver(
    "question_type",
    [
        ("current_version", _from_current_version(TYPE_FIELDS)),
        ("document", _from_document(TYPE_FIELDS)),
    ],
)


def normalize_question_type(raw_type: Any) -> Optional[str]:
    """
    Bucket a raw type name into likert, multiple_choice or open_text.

    Returns:
        Canonical type, or None if the name matches no bucket
    """
    if not isinstance(raw_type, str):
        return None
    lowered = raw_type.lower()
    for canonical, keywords in TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return canonical
    return None


def resolve_question_text(question: Any, question_id: str) -> str:
    return str(question_text_resolver.resolve(question, question_id).value)


def resolve_question_type(question: Any, question_id: str = "") -> Optional[str]:
    """Canonical type from the question document, or None if unresolved."""
    raw = question_type_resolver.resolve(question, question_id).value
    return normalize_question_type(raw)


def category_tags(question: Any) -> Set[str]:
    """Category tag ids of the question's current version."""
    version = current_version(question)
    tags = record_value(version, *TAG_FIELDS) if version is not None else None
    if tags is None:
        tags = record_value(question, *TAG_FIELDS) if question is not None else None
    if not isinstance(tags, (list, tuple, set)):
        return set()
    return {str(tag) for tag in tags if tag is not None}


def build_question_tags(questions: Mapping[str, Any]) -> Dict[str, Set[str]]:
    """Question id -> category tags, for tag filtering."""
    return {str(question_id): category_tags(question) for question_id, question in questions.items()}
