"""User lookup endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.common import ApiResponse
from ..core.schemas.users import PublicUserResponse
from ..core.services import UserService
from ..database import get_db_session
from ..middleware.auth import require_active_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=ApiResponse[PublicUserResponse])
async def get_user(
    user_id: UUID,
    current_user_id: UUID = Depends(require_active_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Public profile of a user."""
    user_service = UserService(session)
    return ApiResponse.ok(await user_service.get_public_profile(user_id))
