# Application factory and ASGI entry point
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import (
    auth_router,
    collaboration_router,
    health_router,
    labels_router,
    notes_router,
    users_router,
)
from .config import Settings, get_settings
from .core.exceptions import register_exception_handlers
from .core.logging import LoggingMiddleware, get_logger, setup_logging
from .core.redis_client import get_redis_client
from .database import create_tables, dispose_engine
from .realtime.relay import CollaborationRelay

setup_logging()
logger = get_logger("main")

API_PREFIX = "/api"
ROUTERS = (
    auth_router,
    users_router,
    notes_router,
    labels_router,
    health_router,
    collaboration_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect Redis, prepare the schema and own the collaboration relay."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting NoteSync application",
        extra={"version": settings.app_version, "environment": settings.environment},
    )

    # only the token blacklist lives in Redis, so the API runs without it
    redis_client = get_redis_client()
    try:
        await redis_client.connect()
    except Exception as e:
        logger.warning(f"Redis unavailable ({e}); logged out tokens stay valid until expiry")

    if os.getenv("NOTESYNC_SKIP_LIFESPAN_DB") == "1":
        logger.info("NOTESYNC_SKIP_LIFESPAN_DB=1, not creating tables")
    else:
        await create_tables()

    app.state.relay = CollaborationRelay(
        outbox_size=settings.relay_outbox_size,
        max_failed_forwards=settings.relay_max_failed_forwards,
    )

    yield

    logger.info("Shutting down NoteSync application", extra=app.state.relay.stats())
    await app.state.relay.close()
    await redis_client.disconnect()
    await dispose_engine()


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or get_settings()

    application = FastAPI(
        title=settings.app_name,
        description="Notes with labels, password protection and live collaboration",
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.state.settings = settings

    register_exception_handlers(application)
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in ROUTERS:
        application.include_router(router, prefix=API_PREFIX)

    @application.get("/")
    async def root():
        return {"message": settings.app_name}

    @application.get(f"{API_PREFIX}/")
    async def api_root():
        return {
            "message": settings.app_name,
            "version": settings.app_version,
            "documentation": {"swagger_ui": "/docs", "redoc": "/redoc", "openapi_json": "/openapi.json"},
            "endpoints": {
                "authentication": f"{API_PREFIX}/auth/",
                "users": f"{API_PREFIX}/users/",
                "notes": f"{API_PREFIX}/notes/",
                "labels": f"{API_PREFIX}/labels/",
                "health": f"{API_PREFIX}/health/",
                "collaboration": f"{API_PREFIX}/collab/ws",
            },
        }

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("notesync.main:app", host=_settings.host, port=_settings.port, reload=_settings.reload)
