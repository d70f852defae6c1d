"""Application initialization orchestrator."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

from aiohttp import web as aiohttp_web
from aiohttp_wsgi import WSGIHandler

from config import Config, load_config
from core.logger import get_logger
from database import close_db_pool, init_db_pool, run_migrations
from services.rigging import HttpRiggingFallback, RiggingReconciler
from services.wheel_service import WheelService, init_wheel_service

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or load_config()
        self.db_pool = None
        self.wheel_service: Optional[WheelService] = None
        self.web_runner: Optional[aiohttp_web.AppRunner] = None

    async def initialize(self) -> None:
        """Initialize all application components."""
        await self._init_database()
        self._init_wheel_service()
        await self._init_web_server()

    async def run(self) -> None:
        """Serve until cancelled."""
        try:
            logger.info("Wheel server running...")
            while True:
                await asyncio.sleep(1)
        except (KeyboardInterrupt, asyncio.CancelledError):
            logger.info("Shutting down...")
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        """Release resources in reverse order of creation."""
        if self.web_runner is not None:
            await self.web_runner.cleanup()
            self.web_runner = None
        if self.wheel_service is not None:
            await self.wheel_service.shutdown()
        await close_db_pool()
        logger.info("Cleanup complete")

    async def _init_database(self) -> None:
        """Initialize database pool and run migrations."""
        self.db_pool = await init_db_pool(
            database_path=self.config.database_path,
            pool_size=self.config.db_pool_size,
            busy_timeout_ms=self.config.db_busy_timeout,
        )
        await run_migrations(self.db_pool)
        logger.info("✅ Database initialized")

    def _init_wheel_service(self) -> None:
        fallback = None
        if self.config.rigging_fallback_url:
            fallback = HttpRiggingFallback(
                self.config.rigging_fallback_url,
                timeout=self.config.rigging_fallback_timeout,
            )
            logger.info(f"Rigging fallback enabled: {self.config.rigging_fallback_url}")

        self.wheel_service = init_wheel_service(
            default_wheel_id=self.config.default_wheel_id,
            duration_ms=self.config.spin_duration_ms,
            frame_ms=self.config.spin_frame_ms,
            reconciler=RiggingReconciler(fallback=fallback),
        )
        logger.info("✅ Wheel service initialized")

    async def _init_web_server(self) -> None:
        """Host the Flask app on aiohttp inside this event loop."""
        from web import create_app

        flask_app = create_app(self.config, wheel_service=self.wheel_service)

        # Create WSGI handler for Flask app
        wsgi_handler = WSGIHandler(flask_app)

        aio_app = aiohttp_web.Application()
        aio_app.router.add_route("*", "/{path_info:.*}", wsgi_handler)

        self.web_runner = aiohttp_web.AppRunner(aio_app)
        await self.web_runner.setup()

        # Bind to PORT env var if present (Render/Heroku)
        effective_port = int(os.getenv("PORT", str(self.config.web_port)))
        effective_host = "0.0.0.0" if os.getenv("PORT") else self.config.web_host

        site = aiohttp_web.TCPSite(self.web_runner, effective_host, effective_port)
        await site.start()

        logger.info(f"🚀 Web server started on http://{effective_host}:{effective_port}")
        logger.info(f"🎡 Wheel API: http://{effective_host}:{effective_port}/api/wheel/{self.config.default_wheel_id}")
