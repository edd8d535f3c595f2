"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from survey_analytics.dao.base import BaseDAO
from survey_analytics.dao.user import UserDAO
from survey_analytics.dao.question import QuestionDAO
from survey_analytics.dao.survey import (
    SurveyDAO,
    SurveyResponseDAO,
    IncompleteSurveyResponseDAO,
)

__all__ = [
    "BaseDAO",
    "UserDAO",
    "QuestionDAO",
    "SurveyDAO",
    "SurveyResponseDAO",
    "IncompleteSurveyResponseDAO",
]
