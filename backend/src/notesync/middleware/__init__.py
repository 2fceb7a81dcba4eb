"""Middleware for authentication and other cross-cutting concerns."""

from .auth import JWTBearer, get_access_token, get_current_user_id, require_active_user

__all__ = ["JWTBearer", "get_access_token", "get_current_user_id", "require_active_user"]
