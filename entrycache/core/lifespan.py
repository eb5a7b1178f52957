"""Runtime lifespan: startup and shutdown.

Single place for startup/shutdown wiring (logging, telemetry, Redis
clients, SQL engine). No cache logic here.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from entrycache.core.config import Settings, get_settings
from entrycache.infrastructure.cache.provider import RedisClientProvider, set_redis_provider
from entrycache.infrastructure.persistence import database
from entrycache.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def cache_runtime(settings: Settings | None = None) -> AsyncIterator[RedisClientProvider]:
    """Run startup then yield the installed provider; on exit run shutdown.

    Startup order: logging, telemetry (if enabled), Redis provider.
    Shutdown order: Redis clients close, telemetry shutdown, SQL engine dispose.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    setup_logging(settings)

    telemetry = None
    if settings.telemetry_enabled:
        from entrycache.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(settings)
        set_telemetry(telemetry)
        if telemetry.setup() is not None:
            telemetry.instrument(database.get_engine() if settings.database_url else None)

    provider = RedisClientProvider(settings)
    set_redis_provider(provider)
    logger.info("Cache runtime started (%s %s)", settings.app_name, settings.app_version)

    try:
        yield provider
    finally:
        # ---- Shutdown ----
        await provider.close()
        set_redis_provider(None)
        logger.info("Redis clients closed")

        if telemetry is not None:
            from entrycache.shared.telemetry.telemetry import set_telemetry

            telemetry.shutdown()
            set_telemetry(None)

        await database.dispose_engine()
