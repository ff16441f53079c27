from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from relay.errors import WebhookError
from relay.session import UNKNOWN_CALLER, CallSession, CallSessionStore

if TYPE_CHECKING:  # pragma: no cover
    from integrations.backend_webhook import BackendWebhook

LOGGER = logging.getLogger(__name__)


async def resolve_greeting(webhook: BackendWebhook, caller_number: str, default: str) -> str:
    """Personalized greeting for the caller, or `default` when the backend has none."""

    if not webhook.configured:
        return default
    try:
        greeting = await webhook.fetch_greeting(caller_number)
    except WebhookError as exc:
        LOGGER.warning("Greeting lookup failed for %s, using default: %s", caller_number, exc)
        return default
    if not greeting:
        return default
    LOGGER.info("Personalized greeting for %s: %s", caller_number, greeting)
    return greeting


async def open_call(
    store: CallSessionStore,
    webhook: BackendWebhook,
    call_details: Mapping[str, Any],
    *,
    default_greeting: str,
) -> CallSession:
    """Register a new call from the Twilio voice webhook parameters."""

    call_sid = str(call_details.get("CallSid") or "").strip()
    if not call_sid:
        raise ValueError("CallSid is required")
    caller_number = str(call_details.get("From") or "").strip() or UNKNOWN_CALLER

    LOGGER.info("Incoming call %s from %s", call_sid, caller_number)
    greeting = await resolve_greeting(webhook, caller_number, default_greeting)
    return await store.create(
        call_sid,
        caller_number=caller_number,
        greeting=greeting,
        call_details=dict(call_details),
    )
