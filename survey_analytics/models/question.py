"""
Question bank model.

WHAT: Versioned question definitions referenced by answer items.

WHY: Question wording and type change over time; each edit appends a
version document and bumps current_version so historical responses keep
their question id.

Version document shape:
    {
        "version": 2,
        "question_text": "How satisfied are you?",
        "type": "likert",            # or question_type / input_type /
                                      # answer_type / response_type
        "category_tags": ["t1"]
    }
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import Integer, String, Text, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from survey_analytics.models.base import Base, utc_now


class Question(Base):
    """Question with its version history."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Legacy unversioned wording, used when no version has text
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    current_version: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    versions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Question(id='{self.id}', current_version={self.current_version})>"
