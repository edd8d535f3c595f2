"""
User model.

WHY: Users are mirrored from the identity service so that bearer tokens can
be checked against a current role and active flag.
"""

import enum
from sqlalchemy import Column, String, Enum, Boolean

from survey_analytics.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: Enum ensures only valid roles can be assigned, making role-based
    access control reliable.
    """

    ADMIN = "ADMIN"  # Manages surveys and corrects responses
    ANALYST = "ANALYST"  # Read access to analytics
    RESPONDENT = "RESPONDENT"  # Answers surveys


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """User known to the analytics service."""

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # Default RESPONDENT role ensures least-privilege access
    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.RESPONDENT)

    # is_active allows revoking access without deleting the user
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
