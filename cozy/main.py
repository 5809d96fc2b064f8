"""Cozy Connections entry point."""

import asyncio
import logging

from cozy.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


async def serve() -> None:
    """Run the API until cancelled."""
    from cozy.api.server import ApiServer
    from cozy.notifications import NotificationRouter
    from cozy.services import Services

    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty — AI functions will use offline replies")

    services = Services.build(notifier=NotificationRouter.get())
    server = ApiServer(services)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    logger.info("Starting Cozy Connections with model %s...", settings.ai_model)
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
