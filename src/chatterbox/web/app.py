# ABOUTME: FastAPI application factory for the Chatterbox HTTP ingress.
# ABOUTME: Routes hand payloads to the InboundRelay of the Chatterbox instance the app is built with.

from fastapi import FastAPI

from chatterbox import __version__
from chatterbox.relay.service import Chatterbox
from chatterbox.web.routes import build_router


def create_app(chatterbox: Chatterbox) -> FastAPI:
    """
    Create the ingress application.

    Args:
        chatterbox: Connected service whose relays handle the requests

    Returns:
        FastAPI app with all ingress routes registered
    """
    app = FastAPI(title="Chatterbox", version=__version__, docs_url=None, redoc_url=None)
    app.state.chatterbox = chatterbox
    app.include_router(build_router(chatterbox))
    return app
