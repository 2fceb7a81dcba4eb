"""Authentication service implementation."""

from typing import Any, Dict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...security import (
    blacklist_token,
    create_access_token,
    hash_password,
    needs_update,
    verify_password,
)
from ..exceptions import AuthenticationError, BadRequestError, NotFoundError
from ..logging import get_logger
from ..models.user import User
from ..repositories.refresh_token_repository import RefreshTokenRepository
from ..repositories.user_repository import UserRepository
from ..schemas.auth import (
    LoginRequest,
    PasswordChangeRequest,
    PreferencesUpdateRequest,
    RefreshTokenRequest,
    ActivationTokenResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UpdateDetailsRequest,
    UserResponse,
)

logger = get_logger("auth")


class AuthService:
    """Authentication service implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.token_repo = RefreshTokenRepository(session)
        self.settings = get_settings()

    async def register_user(self, request: RegisterRequest) -> RegisterResponse:
        """Register new user; inactive accounts get a one-time activation token."""
        if await self.user_repo.is_email_taken(request.email):
            raise BadRequestError("User already exists")

        user = await self.user_repo.create_user(
            {
                "name": request.name,
                "email": request.email,
                "password_hash": hash_password(request.password),
                "is_activated": self.settings.auto_activate_users,
                "preferences": {},
            }
        )
        logger.info(f"Registered user {user.id}")

        activation_token = None
        if not user.is_activated:
            activation_token = user.issue_activation_token(self.settings.activation_token_expire_hours)
            await self.session.commit()
        return RegisterResponse.model_validate(user).model_copy(
            update={"activation_token": activation_token}
        )

    async def activate_account(self, token: str) -> TokenResponse:
        """Exchange a one-time activation token; the token stops working afterwards."""
        user = await self.user_repo.get_by_activation_token(token)
        if not user or user.activation_token_expired:
            raise BadRequestError("Invalid or expired activation token")

        user.activate()
        await self.session.commit()
        logger.info(f"Activated user {user.id}")
        return await self._issue_tokens(user)

    async def reissue_activation_token(self, user_id: UUID) -> ActivationTokenResponse:
        """New activation token for an inactive account; earlier tokens stop working."""
        user = await self._get_user(user_id)
        if user.is_activated:
            raise BadRequestError("Account is already activated")

        hours = self.settings.activation_token_expire_hours
        token = user.issue_activation_token(hours)
        await self.session.commit()
        return ActivationTokenResponse(activation_token=token, expires_in=hours * 3600)

    async def authenticate_user(self, request: LoginRequest) -> TokenResponse:
        """Login user and return tokens."""
        user = await self.user_repo.get_by_email(request.email)
        # same message for unknown email and wrong password
        if not user or not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")

        if needs_update(user.password_hash):
            user = await self.user_repo.update_user(
                user, {"password_hash": hash_password(request.password)}
            )
            logger.info(f"Rehashed password of user {user.id}")

        return await self._issue_tokens(user)

    async def refresh_token(self, request: RefreshTokenRequest) -> TokenResponse:
        """Exchange a refresh token for a new pair; the old one is revoked."""
        token_obj = await self.token_repo.get_by_token(request.refresh_token)
        if not token_obj or not token_obj.is_valid:
            raise AuthenticationError("Invalid refresh token")

        user = await self.user_repo.get_by_id(token_obj.user_id)
        if not user:
            raise AuthenticationError("Invalid refresh token")

        await self.token_repo.revoke(token_obj)
        purged = await self.token_repo.delete_expired_tokens()
        if purged:
            logger.debug(f"Purged {purged} expired refresh tokens")
        return await self._issue_tokens(user)

    async def get_current_user(self, user_id: UUID) -> UserResponse:
        user = await self._get_user(user_id)
        return UserResponse.model_validate(user)

    async def update_details(self, user_id: UUID, request: UpdateDetailsRequest) -> UserResponse:
        """Update name and/or email."""
        user = await self._get_user(user_id)

        update_data: Dict[str, Any] = {}
        if request.name is not None:
            update_data["name"] = request.name
        if request.email is not None and request.email != user.email:
            if await self.user_repo.is_email_taken(request.email, exclude_user_id=user.id):
                raise BadRequestError("Email already in use")
            update_data["email"] = request.email

        if update_data:
            user = await self.user_repo.update_user(user, update_data)
        return UserResponse.model_validate(user)

    async def change_password(self, user_id: UUID, request: PasswordChangeRequest) -> TokenResponse:
        """Change password, revoke every refresh token and issue a new pair."""
        user = await self._get_user(user_id)
        if not verify_password(request.current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user = await self.user_repo.update_user(
            user, {"password_hash": hash_password(request.new_password)}
        )
        await self.token_repo.delete_user_tokens(user.id)
        logger.info(f"Password changed for user {user.id}")
        return await self._issue_tokens(user)

    async def update_preferences(
        self, user_id: UUID, request: PreferencesUpdateRequest
    ) -> Dict[str, Any]:
        """Shallow-merge preferences and return the full map."""
        user = await self._get_user(user_id)
        merged = user.merge_preferences(request.preferences)
        await self.session.commit()
        return merged

    async def logout_user(self, user_id: UUID, access_token: str) -> bool:
        """Blacklist the access token and drop every refresh token of the user."""
        if access_token:
            await blacklist_token(access_token)
        deleted_count = await self.token_repo.delete_user_tokens(user_id)
        logger.info(f"User {user_id} logged out ({deleted_count} refresh tokens removed)")
        return deleted_count > 0

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _issue_tokens(self, user: User) -> TokenResponse:
        access_token = create_access_token(data={"sub": str(user.id)})
        refresh = await self.token_repo.create_for_user(
            user.id, self.settings.refresh_token_expire_days
        )
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh.token,
            token_type="bearer",
            expires_in=self.settings.access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user),
        )
