"""HTTP ingress for Slack webhooks, OAuth and payment callbacks"""

from .app import create_app
from .routes import build_router

__all__ = ["create_app", "build_router"]
