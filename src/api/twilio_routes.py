"""Twilio Voice integration.

This module provides:
- The voice webhook (TwiML) that connects an inbound call to a media stream.
- The Media Streams WebSocket that relays call audio to the realtime model.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from twilio.twiml.voice_response import Connect, VoiceResponse

from api.dependencies import (
    get_backend_webhook,
    get_complaint_repository,
    get_realtime_connection,
    get_session_store,
)
from config.settings import get_settings
from db.repository import ComplaintRepository
from integrations.backend_webhook import BackendWebhook
from integrations.openai_realtime import RealtimeConnection
from relay.dispatch import FunctionDispatcher
from relay.intake import open_call
from relay.media_relay import MediaRelay
from relay.session import CallSessionStore
from relay.tools import build_session_update

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _media_stream_url(request: Request) -> str:
    settings = get_settings()
    path = request.url_for("twilio_media_stream").path
    if settings.public_base_url:
        return _to_ws_url(settings.public_base_url.rstrip("/") + path)
    # Twilio only streams over TLS; prefer PUBLIC_BASE_URL behind proxies.
    host = request.headers.get("host") or request.url.netloc
    return f"wss://{host}{path}"


def _twiml_connect_stream(*, stream_url: str, greeting: str, caller_number: str) -> str:
    response = VoiceResponse()
    connect = Connect()
    stream = connect.stream(url=stream_url)
    stream.parameter(name="firstMessage", value=greeting)
    stream.parameter(name="callerNumber", value=caller_number)
    response.append(connect)
    return str(response)


@router.api_route("/incoming-call", methods=["GET", "POST"])
async def twilio_incoming_call(
    request: Request,
    store: CallSessionStore = Depends(get_session_store),
    webhook: BackendWebhook = Depends(get_backend_webhook),
) -> Response:
    settings = get_settings()

    params: dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        form = await request.form()
        params.update({key: str(value) for key, value in form.items()})
    LOGGER.debug("Twilio inbound details: %s", params)

    try:
        session = await open_call(store, webhook, params, default_greeting=settings.default_greeting)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return _twiml_response(
        _twiml_connect_stream(
            stream_url=_media_stream_url(request),
            greeting=session.greeting,
            caller_number=session.caller_number,
        )
    )


class WebSocketMediaStream:
    """Adapts the FastAPI WebSocket to the relay's media stream interface."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def messages(self) -> AsyncIterator[str]:
        try:
            while True:
                yield await self._websocket.receive_text()
        except WebSocketDisconnect:
            return

    async def send(self, frame: dict[str, Any]) -> None:
        try:
            await self._websocket.send_text(json.dumps(frame))
        except (WebSocketDisconnect, RuntimeError) as exc:
            LOGGER.debug("Dropping %s frame for closed stream: %s", frame.get("event"), exc)


@router.websocket("/media-stream")
async def twilio_media_stream(
    websocket: WebSocket,
    store: CallSessionStore = Depends(get_session_store),
    webhook: BackendWebhook = Depends(get_backend_webhook),
    model: RealtimeConnection = Depends(get_realtime_connection),
    complaints: ComplaintRepository = Depends(get_complaint_repository),
) -> None:
    settings = get_settings()
    await websocket.accept()
    LOGGER.info("Client connected to media-stream")

    dispatcher = FunctionDispatcher(
        webhook,
        complaints=complaints if settings.enable_complaint_logging else None,
    )
    relay = MediaRelay(
        store=store,
        model=model,
        dispatcher=dispatcher,
        backend=webhook,
        session_update=build_session_update(settings),
        fallback_greeting=settings.fallback_stream_greeting,
    )
    await relay.serve(WebSocketMediaStream(websocket))
