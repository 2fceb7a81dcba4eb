"""Authentication API endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..core.schemas.auth import (
    ActivationTokenResponse,
    LoginRequest,
    PasswordChangeRequest,
    PreferencesUpdateRequest,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UpdateDetailsRequest,
    UserResponse,
)
from ..core.schemas.common import ApiResponse
from ..core.services import AuthService
from ..database import get_db_session
from ..middleware.auth import get_access_token, get_current_user_id

router = APIRouter(prefix="/auth", tags=["authentication"])


def _set_token_cookie(response: Response, tokens: TokenResponse) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


@router.post(
    "/register", response_model=ApiResponse[RegisterResponse], status_code=status.HTTP_201_CREATED
)
async def register(request: RegisterRequest, session: AsyncSession = Depends(get_db_session)):
    """Register a new user."""
    auth_service = AuthService(session)
    return ApiResponse.ok(await auth_service.register_user(request))


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    request: LoginRequest, response: Response, session: AsyncSession = Depends(get_db_session)
):
    """Login user, set the token cookie and return the token pair."""
    auth_service = AuthService(session)
    tokens = await auth_service.authenticate_user(request)
    _set_token_cookie(response, tokens)
    return ApiResponse.ok(tokens)


@router.post("/activate/{token}", response_model=ApiResponse[TokenResponse])
async def activate_account(
    token: str, response: Response, session: AsyncSession = Depends(get_db_session)
):
    """Activate an account with its one-time token and log it in."""
    auth_service = AuthService(session)
    tokens = await auth_service.activate_account(token)
    _set_token_cookie(response, tokens)
    return ApiResponse.ok(tokens)


@router.post("/activation", response_model=ApiResponse[ActivationTokenResponse])
async def reissue_activation_token(
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Replace the activation token of the current, not yet active, account."""
    auth_service = AuthService(session)
    return ApiResponse.ok(await auth_service.reissue_activation_token(current_user_id))


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    request: RefreshTokenRequest,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
):
    """Rotate the refresh token and issue a new access token."""
    auth_service = AuthService(session)
    tokens = await auth_service.refresh_token(request)
    _set_token_cookie(response, tokens)
    return ApiResponse.ok(tokens)


@router.post("/logout", response_model=ApiResponse[Dict[str, Any]])
async def logout(
    request: Request,
    response: Response,
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Invalidate the current access token and every refresh token."""
    auth_service = AuthService(session)
    await auth_service.logout_user(current_user_id, get_access_token(request))
    response.delete_cookie(get_settings().auth_cookie_name)
    return ApiResponse.ok({})


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Get current user profile."""
    auth_service = AuthService(session)
    return ApiResponse.ok(await auth_service.get_current_user(current_user_id))


@router.put("/updatedetails", response_model=ApiResponse[UserResponse])
async def update_details(
    request: UpdateDetailsRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Update name and email."""
    auth_service = AuthService(session)
    return ApiResponse.ok(await auth_service.update_details(current_user_id, request))


@router.put("/updatepassword", response_model=ApiResponse[TokenResponse])
async def update_password(
    request: PasswordChangeRequest,
    response: Response,
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Change password and get a fresh token pair."""
    auth_service = AuthService(session)
    tokens = await auth_service.change_password(current_user_id, request)
    _set_token_cookie(response, tokens)
    return ApiResponse.ok(tokens)


@router.put("/preferences", response_model=ApiResponse[Dict[str, Any]])
async def update_preferences(
    request: PreferencesUpdateRequest,
    current_user_id: UUID = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_db_session),
):
    """Merge preference keys into the stored map."""
    auth_service = AuthService(session)
    return ApiResponse.ok(await auth_service.update_preferences(current_user_id, request))
