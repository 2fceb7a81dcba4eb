"""Authentication dependencies."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..core.exceptions import AccountInactiveError, AuthenticationError
from ..core.repositories.user_repository import UserRepository
from ..database import get_db_session
from ..security import get_user_id_from_token


def get_access_token(request: Request) -> Optional[str]:
    """Access token from the Authorization header, falling back to the auth cookie."""
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return request.cookies.get(get_settings().auth_cookie_name)


class JWTBearer(HTTPBearer):
    """JWT Bearer token authentication, also accepting the token cookie."""

    def __init__(self):
        # missing header is not an error here, the cookie may carry the token
        super().__init__(auto_error=False)

    async def __call__(self, request: Request) -> UUID:
        credentials: Optional[HTTPAuthorizationCredentials] = await super().__call__(request)
        token = credentials.credentials if credentials else get_access_token(request)
        if not token:
            raise AuthenticationError("Not authorized to access this route")

        user_id = await get_user_id_from_token(token)
        if not user_id:
            raise AuthenticationError("Invalid or expired token")

        return user_id


# Dependency for getting current user ID from JWT
async def get_current_user_id(user_id: UUID = Depends(JWTBearer())) -> UUID:
    """Get current authenticated user ID."""
    return user_id


async def require_active_user(
    user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
) -> UUID:
    """Authenticated user whose account still exists and is activated."""
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise AuthenticationError("Not authorized to access this route")
    if not user.is_activated:
        raise AccountInactiveError("Please activate your account")
    return user_id
