"""Database package"""

from survey_analytics.db.session import AsyncSessionLocal, engine, get_db
from survey_analytics.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
