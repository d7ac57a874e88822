"""Main entry point - runs the deploy API."""

import asyncio
import logging
import signal

import uvicorn

from zerounbound.api.app import create_app
from zerounbound.config import get_settings
from zerounbound.utils.diagnostics import configure_logging, install_loop_exception_filter

logger = logging.getLogger(__name__)


class Application:
    """Main application that serves the deploy API."""

    def __init__(self):
        self.settings = get_settings()
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        configure_logging(self.settings.debug)
        install_loop_exception_filter(asyncio.get_running_loop())

        logger.info("Starting ZeroUnbound deploy API...")
        logger.info(f"Environment: {self.settings.environment}, network: {self.settings.network}")

        api_task = asyncio.create_task(self._run_api())
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        # Wait for shutdown signal or the server exiting on its own
        await asyncio.wait({api_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)

        for task in (api_task, shutdown_task):
            task.cancel()
        await asyncio.gather(api_task, shutdown_task, return_exceptions=True)
        logger.info("Shutdown complete")

    async def _run_api(self):
        """Run the FastAPI server."""
        try:
            config = uvicorn.Config(
                create_app(),
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def main():
    """Main entry point."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    app = Application()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
