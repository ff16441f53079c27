"""Outbound WebSocket connection to the OpenAI Realtime API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from config.settings import get_settings
from relay.errors import ConfigurationError, ModelConnectionError

LOGGER = logging.getLogger(__name__)

WS_MAX_SIZE = 16 * 1024 * 1024


class RealtimeConnection:
    """One speech-to-speech session with the realtime model.

    No reconnection is attempted: once the socket drops the call stays silent
    until the caller hangs up.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        self._model = model or settings.openai_realtime_model
        self._base_url = (base_url or settings.openai_realtime_url).rstrip("/")
        self._ws: ClientConnection | None = None

    @property
    def url(self) -> str:
        return f"{self._base_url}?{urlencode({'model': self._model})}"

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    async def connect(self) -> None:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        LOGGER.info("Connecting to OpenAI Realtime API (model=%s)", self._model)
        try:
            self._ws = await connect(
                self.url,
                additional_headers=headers,
                max_size=WS_MAX_SIZE,
                ping_interval=20,
                ping_timeout=20,
            )
        except (OSError, WebSocketException) as exc:
            raise ModelConnectionError(f"Could not connect to realtime model: {exc}") from exc
        LOGGER.info("Connected to the OpenAI Realtime API")

    async def send(self, event: dict[str, Any]) -> None:
        if self._ws is None:
            raise ModelConnectionError("Realtime model connection is not open")
        try:
            await self._ws.send(json.dumps(event))
        except ConnectionClosed as exc:
            raise ModelConnectionError(f"Realtime model connection closed: {exc}") from exc

    async def events(self) -> AsyncIterator[str | bytes]:
        """Yield raw server events until the socket closes."""

        if self._ws is None:
            raise ModelConnectionError("Realtime model connection is not open")
        try:
            async for message in self._ws:
                yield message
        except ConnectionClosed as exc:
            raise ModelConnectionError(f"Realtime model connection closed: {exc}") from exc

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
