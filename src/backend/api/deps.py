"""
Shared dependencies for API endpoints.

Includes:
- JWT authentication (Bearer header or auth cookie)
- Role-based capability checks
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import Forbidden, Unauthorized
from core.security import decode_token
from db.session import get_db
from models.user import User, UserStatus
from repositories.user_repository import UserRepository
from schemas.user import CurrentUser

logger = structlog.get_logger(__name__)

# The cookie is an alternative to the header, so the scheme must not auto-fail
security_optional = HTTPBearer(auto_error=False)


# =============================================================================
# Helper Functions
# =============================================================================


def _user_model_to_schema(user: User, roles: list[str]) -> CurrentUser:
    """Single source of truth for User -> CurrentUser conversion."""
    return CurrentUser(
        id=str(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        roles=roles,
    )


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def client_ip(request: Request) -> Optional[str]:
    """Caller address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


# =============================================================================
# User Authentication (JWT-based)
# =============================================================================


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security_optional)],
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Resolve the caller from their access token.

    Roles are read from the database on every request, so a revoked role
    takes effect immediately rather than when the token expires.

    Raises:
        Unauthorized: no token, invalid or expired token, or unknown user.
        Forbidden: the account is not active.
    """
    token = _extract_token(request, credentials)
    if not token:
        raise Unauthorized("Not authenticated")

    payload = decode_token(token)
    if payload is None:
        raise Unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthorized("Invalid token payload")

    users = UserRepository(db)
    user = await users.get_by_id(user_id)
    if user is None:
        raise Unauthorized("User not found")
    if user.status != UserStatus.ACTIVE.value:
        logger.warning("inactive_user_request", user_id=user_id, status=user.status)
        raise Forbidden("Account is not active")

    roles = await users.get_roles(user_id)
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return _user_model_to_schema(user, roles)


class require_roles:
    """
    Dependency factory for the single capability check.

    ``Depends(require_roles("Admin", "SuperAdmin"))`` passes when the caller
    holds any one of the listed roles.
    """

    def __init__(self, *roles: str):
        self.roles = roles

    async def __call__(
        self,
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not current_user.has_any_role(*self.roles):
            logger.warning(
                "role_check_failed",
                user_id=current_user.id,
                required=list(self.roles),
            )
            raise Forbidden("Insufficient permissions")
        return current_user


get_current_admin_user = require_roles(*settings.admin_roles_list)
