"""
Base model class for all SQLAlchemy models.

WHY: Centralizing common model functionality (timestamps, ID) in a base class
ensures consistency across all models and reduces code duplication.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    """
    Current time as a naive UTC datetime.

    WHY: All timestamp columns store naive UTC so that date bucketing in
    analytics never depends on the server's local timezone.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    WHY: Timestamps are set in Python rather than by the database server so
    that they are available immediately after flush and are always UTC.
    """

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class PrimaryKeyMixin:
    """Mixin to add an integer primary key to models."""

    id = Column(Integer, primary_key=True, index=True)
