# ABOUTME: HTTP ingress routes for Slack webhooks, OAuth and payment callbacks.
# ABOUTME: Handlers answer at once and hand work to the inbound relay as guarded background tasks.

import json
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from loguru import logger

from chatterbox.models.envelopes import InboundType
from chatterbox.relay.service import Chatterbox

EVENT_URL_VERIFICATION = "url_verification"
EVENT_CALLBACK = "event_callback"


async def _form(request: Request) -> dict[str, Any]:
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


async def _json_object(request: Request) -> dict[str, Any] | None:
    """Request body as a JSON object, or None when it isn't one"""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def build_router(chatterbox: Chatterbox) -> APIRouter:
    """Create the ingress routes bound to a running Chatterbox"""
    router = APIRouter()
    inbound = chatterbox.inbound

    @router.get("/ping", response_class=PlainTextResponse)
    async def ping():
        logger.info("Pong!")
        return "Chat & Slash is up & running!"

    @router.get("/slack/oauth")
    async def oauth(code: str | None = None, error: str | None = None):
        """Finish an app installation and redirect to the result page."""
        return RedirectResponse(await chatterbox.installer.install(code, error))

    @router.post("/slack/button")
    async def button(request: Request, background: BackgroundTasks):
        form = await _form(request)
        try:
            payload = json.loads(form.get("payload", ""))
        except json.JSONDecodeError:
            logger.warning("Button request without a valid payload.")
            return Response(status_code=400)

        background.add_task(chatterbox.guard, inbound.process_payload(InboundType.BUTTON, payload), payload)
        return Response()

    @router.post("/slack/slash")
    async def slash(request: Request, background: BackgroundTasks):
        payload = await _form(request)
        background.add_task(chatterbox.guard, inbound.on_slash(payload), payload)
        return Response()

    @router.post("/slack/event")
    async def event(request: Request, background: BackgroundTasks):
        """Events API callback; answers the URL verification challenge."""
        body = await _json_object(request)
        if body is None:
            logger.warning("Event request without a JSON object body.")
            return Response(status_code=400)

        if not inbound.is_valid_token("event", body.get("token")):
            return Response()

        if body.get("type") == EVENT_URL_VERIFICATION:
            return PlainTextResponse(body.get("challenge", ""))

        if body.get("type") == EVENT_CALLBACK:
            background.add_task(chatterbox.guard, inbound.on_event(body.get("event", {})), body)

        return Response()

    @router.post("/payment")
    async def payment(request: Request, background: BackgroundTasks):
        if request.headers.get("content-type", "").startswith("application/json"):
            payload = await _json_object(request)
            if payload is None:
                logger.warning("Payment request without a JSON object body.")
                return Response(status_code=400)
        else:
            payload = await _form(request)

        background.add_task(chatterbox.guard, inbound.process_payload(InboundType.PAYMENT, payload), payload)
        return Response()

    return router
