"""HTTP forwarder to the business-logic automation backend.

Every backend scenario listens on a single webhook URL and branches on a
``route`` discriminator; the remaining two fields carry free-form data.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel

from config.settings import get_settings
from relay.errors import WebhookError, WebhookNotConfiguredError

LOGGER = logging.getLogger(__name__)


class WebhookRoute(str, Enum):
    FETCH_GREETING = "1"
    PERSIST_TRANSCRIPT = "2"
    ANSWER_QUESTION = "3"
    BOOK_TOW = "4"


class WebhookRequest(BaseModel):
    """Body posted to the backend for every route."""

    route: WebhookRoute
    data1: str
    data2: str


class AnswerReply(BaseModel):
    message: str | None = None
    thread: str | None = None


class BookingReply(BaseModel):
    message: str | None = None


def decode_reply(text: str) -> dict[str, Any] | str:
    """Parse a backend body as a JSON object, falling back to the raw text."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict):
        return payload
    return text


class BackendWebhook:
    """Simple HTTP bridge to the automation backend."""

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._endpoint = endpoint or settings.backend_webhook_url
        self._timeout = timeout or settings.backend_webhook_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._endpoint)

    async def forward(self, route: WebhookRoute, data1: str, data2: str) -> str:
        """POST ``{route, data1, data2}`` and return the response body as text."""

        if not self._endpoint:
            raise WebhookNotConfiguredError()

        payload = WebhookRequest(route=route, data1=data1, data2=data2)
        LOGGER.info("Sending route %s to backend webhook", payload.route.value)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._endpoint,
                    json=payload.model_dump(mode="json"),
                    headers={"Content-Type": "application/json"},
                )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("Backend webhook route %s failed: %s", payload.route.value, exc)
            raise WebhookError(f"Backend webhook route {payload.route.value} failed: {exc}") from exc

        LOGGER.debug("Backend webhook response (%s): %s", response.status_code, response.text)
        return response.text

    async def fetch_greeting(self, caller_number: str) -> str | None:
        text = await self.forward(WebhookRoute.FETCH_GREETING, caller_number, "empty")
        reply = decode_reply(text)
        if isinstance(reply, dict):
            greeting = reply.get("firstMessage")
            return str(greeting) if greeting else None
        return reply.strip() or None

    async def persist_transcript(self, caller_number: str, transcript: str) -> None:
        await self.forward(WebhookRoute.PERSIST_TRANSCRIPT, caller_number, transcript)

    async def answer_question(self, question: str, thread_id: str) -> AnswerReply:
        text = await self.forward(WebhookRoute.ANSWER_QUESTION, question, thread_id)
        reply = decode_reply(text)
        if isinstance(reply, dict):
            return AnswerReply(
                message=_optional_text(reply.get("message")),
                thread=_optional_text(reply.get("thread")),
            )
        return AnswerReply(message=reply.strip() or None)

    async def book_tow(self, caller_number: str, address: str) -> BookingReply:
        text = await self.forward(WebhookRoute.BOOK_TOW, caller_number, address)
        reply = decode_reply(text)
        if isinstance(reply, dict):
            return BookingReply(message=_optional_text(reply.get("message")))
        return BookingReply(message=reply.strip() or None)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
