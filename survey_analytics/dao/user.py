"""
User Data Access Object.

WHY: Users come from the identity service; this service only reads them to
check that a token's user still exists and is active.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.dao.base import BaseDAO
from survey_analytics.models.user import User


class UserDAO(BaseDAO[User]):
    """Data Access Object for User model."""

    def __init__(self, model: type[User], session: AsyncSession):
        super().__init__(model, session)
