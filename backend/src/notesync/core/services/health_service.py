"""Health service implementation."""

import time
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...realtime.relay import CollaborationRelay
from ..logging import get_logger
from ..redis_client import get_redis_client
from ..schemas.common import HealthCheckResponse

logger = get_logger("health")


class HealthService:
    """Health check service implementation."""

    def __init__(self, session: AsyncSession, relay: Optional[CollaborationRelay] = None):
        self.session = session
        self.relay = relay
        self.settings = get_settings()

    async def get_health_status(self) -> HealthCheckResponse:
        """Database decides overall health; Redis being down only degrades it."""
        db_health = await self.check_database_health()
        redis_health = await self.check_redis_health()
        relay_health = self.check_relay_health()

        if not db_health["connected"]:
            overall_status = "unhealthy"
        elif not redis_health["connected"]:
            overall_status = "degraded"
        else:
            overall_status = "healthy"

        return HealthCheckResponse(
            status=overall_status,
            version=self.settings.app_version,
            checks={"database": db_health, "redis": redis_health, "relay": relay_health},
        )

    async def check_database_health(self) -> Dict[str, Any]:
        """Check DB connection."""
        start_time = time.perf_counter()
        try:
            result = await self.session.execute(text("SELECT 1"))
            result.scalar()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"connected": False, "status": "unhealthy", "error": "Database unavailable"}

        return {
            "connected": True,
            "status": "healthy",
            "response_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }

    async def check_redis_health(self) -> Dict[str, Any]:
        """Ping the shared Redis client."""
        start_time = time.perf_counter()
        if not await get_redis_client().ping():
            return {"connected": False, "status": "unhealthy", "response_time_ms": None}
        return {
            "connected": True,
            "status": "healthy",
            "response_time_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }

    def check_relay_health(self) -> Dict[str, Any]:
        if self.relay is None:
            return {"status": "unavailable"}
        return {"status": "healthy", **self.relay.stats()}
