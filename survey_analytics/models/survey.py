"""
Survey and survey response models.

WHAT: SQLAlchemy models for surveys, completed responses and in-progress
response sessions.

WHY: Analytics are computed from two populations of records:
1. Completed responses (SurveyResponse), written once at submission
2. In-progress sessions (IncompleteSurveyResponse), mutated on every answer
   and either promoted to a completed response or flagged abandoned

HOW: Uses SQLAlchemy 2.0 typed mappings. Document-shaped fields (answer
lists, metadata bags, tag lists) are stored as JSON so the same schema works
on PostgreSQL and SQLite.

Answer item shape (both populations):
    {
        "question_id": "q1",
        "answer": 4,              # str | number | bool | list[str] | dict | None
        "section_id": "s1",       # optional
        "time_spent": 12.5,       # optional, seconds
        "skipped": false          # optional
    }
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Float,
    Index,
    JSON,
)
from sqlalchemy.orm import Mapped, mapped_column

from survey_analytics.models.base import Base, utc_now


class DeviceType(str, Enum):
    """
    Device classes used by the device-usage breakdown.

    WHY: Unknown or missing device information is counted as desktop.
    """

    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"


class Survey(Base):
    """
    Survey definition.

    WHAT: Survey metadata needed for scoping and summary KPIs.

    WHY: Question content lives in the question bank; a survey only needs
    its publish state, schedule and tags for analytics.
    """

    __tablename__ = "surveys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Scheduling
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Category tag ids attached to the survey
    tag_ids: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    created_by_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_surveys_published", "published"),
        Index("ix_surveys_created_by_id", "created_by_id"),
    )

    def __repr__(self) -> str:
        return f"<Survey(id={self.id}, title='{self.title}')>"


class SurveyResponse(Base):
    """
    Completed survey submission.

    WHAT: Immutable record of a submitted survey (administrative corrections
    aside).

    WHY: completion_time is derived from start/end at submission and stored
    so trend queries don't need to recompute it.
    """

    __tablename__ = "survey_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    survey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )
    respondent_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    responses: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # Seconds between start_time and end_time
    completion_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    progress: Mapped[int] = mapped_column(Integer, default=100, nullable=False)

    # "metadata" is reserved on declarative classes
    response_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    demographics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    # Section id -> seconds spent
    section_times: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    engagement_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_survey_responses_survey_id", "survey_id"),
        Index("ix_survey_responses_respondent_id", "respondent_id"),
        Index("ix_survey_responses_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SurveyResponse(id={self.id}, survey_id={self.survey_id})>"


class IncompleteSurveyResponse(Base):
    """
    In-progress response session.

    WHAT: One open record per (survey_id, respondent_id) while the
    respondent is answering.

    WHY: In-progress sessions count toward response totals and completion
    rate. When submitted, the session is deleted in the same transaction that
    inserts the completed response so the respondent is never counted twice.

    is_abandoned is nullable: NULL and False both mean "not abandoned".
    """

    __tablename__ = "incomplete_survey_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    survey_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False
    )
    respondent_id: Mapped[str] = mapped_column(String(128), nullable=False)

    responses: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_abandoned: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    engagement_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("ix_incomplete_responses_survey_respondent", "survey_id", "respondent_id"),
        Index("ix_incomplete_responses_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<IncompleteSurveyResponse(id={self.id}, survey_id={self.survey_id}, "
            f"respondent_id='{self.respondent_id}')>"
        )
