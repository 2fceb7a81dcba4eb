"""User lookup service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError
from ..repositories.user_repository import UserRepository
from ..schemas.users import PublicUserResponse


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def get_public_profile(self, user_id: UUID) -> PublicUserResponse:
        """Profile of any user, without preferences."""
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return PublicUserResponse.model_validate(user)
