"""aiohttp application factory and server lifecycle.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop so the API can
share an event loop with tests or other tasks.
"""

from __future__ import annotations

import logging

from aiohttp import web

from cozy.ai import function_registry
from cozy.api.common import SERVICES_KEY, cors_middleware, error_middleware
from cozy.api.routes import routes
from cozy.config import settings
from cozy.services import Services
from cozy.storage import MAX_FILE_SIZE

logger = logging.getLogger(__name__)

# Room for the multipart envelope around a maximum-size image.
_MAX_REQUEST_SIZE = MAX_FILE_SIZE + 64 * 1024


def create_app(services: Services | None = None) -> web.Application:
    """Build the aiohttp Application with routes and middleware."""
    app = web.Application(
        middlewares=[cors_middleware, error_middleware],
        client_max_size=_MAX_REQUEST_SIZE,
    )
    app[SERVICES_KEY] = services or Services.build()
    app.add_routes(routes)
    return app


class ApiServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        services: Services | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self.host = host or settings.api_host
        self.port = port or settings.api_port
        self._services = services
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for API requests."""
        app = create_app(self._services)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(
            "API listening on %s:%d (functions: %s)",
            self.host,
            self.port,
            function_registry.names or ["none registered"],
        )

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("API server stopped")
