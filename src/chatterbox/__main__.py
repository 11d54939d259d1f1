# ABOUTME: Entry point for running the relay: HTTP ingress plus the outbound queue consumer.
# ABOUTME: Provides simple command to run: python -m chatterbox

import asyncio
import sys

import uvicorn
from loguru import logger

from chatterbox.config.settings import Settings, get_settings
from chatterbox.messaging.exceptions import QueueConnectionFailed
from chatterbox.relay.error_reporter import ErrorReporter, init_error_tracking
from chatterbox.relay.service import Chatterbox
from chatterbox.utils.logging import setup_logging, silence_logging
from chatterbox.web.app import create_app


def build_server(chatterbox: Chatterbox, settings: Settings) -> uvicorn.Server:
    """Configure uvicorn for the ingress app, with TLS outside dev"""
    ssl_options = {}
    if settings.ssl_files is not None:
        key, cert, ca = settings.ssl_files
        ssl_options = {
            "ssl_keyfile": str(key),
            "ssl_certfile": str(cert),
            "ssl_ca_certs": str(ca) if ca else None,
        }

    config = uvicorn.Config(
        create_app(chatterbox),
        host=settings.host,
        port=settings.port,
        log_config=None,
        **ssl_options,
    )
    return uvicorn.Server(config)


async def serve(settings: Settings) -> None:
    """Connect the relay and serve HTTP until interrupted"""
    if not settings.is_dev:
        # Delay so a crash-looping process doesn't flood Sentry with reconnect errors
        logger.info(f"{settings.startup_delay_seconds:g}s delay starting now.")
        await asyncio.sleep(settings.startup_delay_seconds)

    chatterbox = await Chatterbox.from_settings(settings)
    await chatterbox.connect()

    server = build_server(chatterbox, settings)
    scheme = "http" if settings.ssl_files is None else "https"
    logger.info(f"Server listening on: {scheme}://{settings.host}:{settings.port}")

    try:
        await server.serve()
    finally:
        await chatterbox.close()


def main() -> None:
    """Run the relay with configuration from the environment"""
    settings = get_settings()

    if settings.mode == "test":
        silence_logging()
    else:
        setup_logging(
            log_level=settings.log_level,
            log_dir=settings.log_dir,
            file_output=settings.log_dir is not None,
        )

    init_error_tracking(settings)

    try:
        asyncio.run(serve(settings))
    except QueueConnectionFailed as e:
        ErrorReporter.from_settings(settings).report(e)
        print(f"Error: Could not connect to Redis: {e}")
        print("Make sure Redis is running and REDIS_URL is correct")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
