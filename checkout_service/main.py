"""Main entry point for the checkout service.

Serves the REST API under uvicorn with graceful shutdown handling.
"""

import asyncio
import signal
import sys

import uvicorn
from pydantic import ValidationError

from checkout_service.api import app as api_app
from checkout_service.api import configure_cors
from checkout_service.config import Settings
from checkout_service.logger import log_manager


class CheckoutServer:
    """Runs the checkout API until a shutdown signal arrives.

    Usage:
        server = CheckoutServer(Settings())
        await server.start()
        # Serving...
        await server.stop()
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize server components.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.api_server: asyncio.Task | None = None
        self._server: uvicorn.Server | None = None
        self._shutdown_event: asyncio.Event | None = None
        self._running = False
        self._shutting_down = False
        self._signal_received = False

    def build_server(self) -> uvicorn.Server:
        """Create the uvicorn server for the API app."""
        configure_cors(api_app, self.settings.cors_origins)
        config = uvicorn.Config(
            api_app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        return uvicorn.Server(config)

    async def start(self) -> None:
        """Start serving and block until shutdown is requested."""
        if self._running:
            return

        log_manager.initialize(self.settings)
        logger = log_manager.get_server_logger()

        self._shutdown_event = asyncio.Event()
        self._setup_signal_handlers()

        self._server = self.build_server()
        self.api_server = asyncio.create_task(self._server.serve())

        self._running = True
        logger.info(f"Checkout service running on {self.settings.base_url}")
        logger.info(f"Health: {self.settings.base_url}/health | Docs: {self.settings.base_url}/docs")

        # uvicorn may handle the signal itself and return from serve()
        shutdown_wait = asyncio.create_task(self._shutdown_event.wait())
        await asyncio.wait(
            {self.api_server, shutdown_wait},
            return_when=asyncio.FIRST_COMPLETED,
        )
        shutdown_wait.cancel()
        await self.stop()

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self._running or self._shutting_down:
            return

        self._shutting_down = True
        logger = log_manager.get_server_logger()
        logger.info("Shutting down checkout service...")

        if self._server is not None:
            self._server.should_exit = True

        if self.api_server and not self.api_server.done():
            try:
                await asyncio.wait_for(self.api_server, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("API server did not stop in time, cancelling")
                self.api_server.cancel()

        self._running = False
        self._shutting_down = False
        logger.info("Checkout service shutdown complete")

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        self._signal_received = False

        def signal_handler(sig, frame):
            """Handle shutdown signals (only process first signal)."""
            if self._signal_received:
                return

            self._signal_received = True
            if self._shutdown_event:
                self._shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def __aenter__(self) -> "CheckoutServer":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()


async def main() -> int:
    """Main entry point."""
    try:
        settings = Settings()
    except ValidationError as e:
        print(f"❌ Invalid configuration (is STRIPE_SECRET_KEY set?):\n{e}", file=sys.stderr)
        return 1

    server = CheckoutServer(settings)
    try:
        await server.start()
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
    finally:
        await server.stop()
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
