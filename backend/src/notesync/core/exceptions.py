"""Domain exceptions and FastAPI exception handlers.

Services raise these the same way FastAPI code raises ``HTTPException``;
the handlers registered here render every error in the API envelope
``{"success": false, "error": "..."}``.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class NoteSyncError(HTTPException):
    """Base class for expected, client facing errors."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    detail_default: str = "Bad request"

    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=self.status_code_default, detail=detail or self.detail_default
        )


class BadRequestError(NoteSyncError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Bad request"


class AuthenticationError(NoteSyncError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Invalid credentials"


class AccountInactiveError(NoteSyncError):
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Account is not activated"


class NotFoundError(NoteSyncError):
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Not found"


class NotOwnerError(NoteSyncError):
    """Requester is not the owner of the resource."""

    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Only the owner can perform this action"


class NotCollaboratorError(NoteSyncError):
    """Requester is neither the owner nor a collaborator of the note."""

    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Not authorized to access this note"


class PasswordMismatchError(NoteSyncError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Incorrect password"


class ConflictError(NoteSyncError):
    status_code_default = status.HTTP_409_CONFLICT
    detail_default = "Resource already exists"


def _error_body(message: str) -> dict:
    return {"success": False, "error": message}


def register_exception_handlers(app: FastAPI) -> None:
    """Render all errors using the API envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
        else:
            logger.info(
                f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}",
                extra={"path": request.url.path, "method": request.method},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(message),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        # never leak internals to the caller
        logger.exception(
            f"Unhandled exception: {type(exc).__name__}",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Server error"),
        )
