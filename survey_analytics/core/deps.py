"""
FastAPI dependencies for authentication and authorization.

WHY: Dependencies provide reusable authentication and authorization logic
that can be injected into route handlers, ensuring consistent security
across the API.
"""

from typing import Iterable, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from survey_analytics.core.auth import verify_token
from survey_analytics.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    TokenExpiredError,
    TokenInvalidError,
)
from survey_analytics.db.session import get_db
from survey_analytics.models.user import User, UserRole
from survey_analytics.dao.user import UserDAO


# HTTP Bearer token security scheme
# Format: "Authorization: Bearer <token>"
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Extracts token from Authorization header
    2. Verifies token signature and expiration
    3. Fetches user from database
    4. Ensures user still exists and is active

    Raises:
        AuthenticationError: If token is missing, invalid, expired, or user not found
    """
    if credentials is None:
        raise AuthenticationError(message="Not authenticated")

    try:
        payload = verify_token(credentials.credentials)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(
            message=str(e),
            status_code=e.status_code,
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(
            message="Invalid token: missing user_id",
        )

    # User data in token might be stale; always fetch current data
    user_dao = UserDAO(User, db)
    user = await user_dao.get_by_id(user_id)

    if not user:
        raise AuthenticationError(
            message="User not found",
            user_id=user_id,
        )

    if not user.is_active:
        raise AuthenticationError(
            message="User account is inactive",
            user_id=user_id,
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Get the authenticated user if a valid token was sent, else None.

    WHY: Respondents may answer surveys anonymously; when they are logged in
    the submission is attributed to them.
    """
    if credentials is None:
        return None
    try:
        return await get_current_user(credentials, db)
    except AuthenticationError:
        return None


def require_roles(roles: Iterable[str]):
    """
    Factory function to create a role requirement dependency.

    Usage:
        @router.get("/analytics/kpis")
        async def kpis(user: User = Depends(require_roles(["ADMIN", "ANALYST"]))):
            ...

    Args:
        roles: Role names any one of which grants access

    Returns:
        Dependency function that checks the user's role
    """
    allowed = {str(role) for role in roles}

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        """
        Raises:
            AuthorizationError: If user has none of the allowed roles
        """
        if current_user.role.value not in allowed:
            raise AuthorizationError(
                message=f"One of roles {sorted(allowed)} required",
                user_id=current_user.id,
                user_role=current_user.role.value,
            )
        return current_user

    return role_checker


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require user to have ADMIN role.

    Raises:
        AuthorizationError: If user is not ADMIN
    """
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError(
            message="Admin access required",
            user_id=current_user.id,
            user_role=current_user.role.value,
        )
    return current_user


require_analytics_access = require_roles([UserRole.ADMIN.value, UserRole.ANALYST.value])
