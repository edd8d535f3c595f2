"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from survey_analytics.models.base import Base, TimestampMixin, PrimaryKeyMixin, utc_now
from survey_analytics.models.user import User, UserRole
from survey_analytics.models.survey import (
    DeviceType,
    Survey,
    SurveyResponse,
    IncompleteSurveyResponse,
)
from survey_analytics.models.question import Question

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "utc_now",
    "User",
    "UserRole",
    "DeviceType",
    "Survey",
    "SurveyResponse",
    "IncompleteSurveyResponse",
    "Question",
]
