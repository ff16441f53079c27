"""Per-call state machine relaying audio between Twilio and the realtime model.

States run ``AWAITING_MODEL_READY -> MODEL_READY -> STREAMING -> CLOSED``.
The stream pump and the model pump share one event loop, so handlers for the
same call never run concurrently; they only interleave at ``await`` points.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any, Protocol

from integrations.twilio_streaming import (
    StreamMedia,
    StreamStart,
    StreamStop,
    UnknownStreamEvent,
    clear_frame,
    media_frame,
    parse_twilio_ws_message,
)
from relay.dispatch import FunctionDispatcher
from relay.errors import MalformedMessageError, ModelConnectionError, WebhookError
from relay.model_events import (
    LOG_EVENT_TYPES,
    AudioDelta,
    ErrorEvent,
    FunctionCallArgumentsDone,
    InputTranscriptionCompleted,
    OtherModelEvent,
    ResponseDone,
    SpeechStarted,
    conversation_user_text,
    input_audio_append,
    parse_model_event,
    response_cancel,
    response_create,
)
from relay.session import UNKNOWN_CALLER, CallSession, CallSessionStore

LOGGER = logging.getLogger(__name__)

DEFAULT_STREAM_GREETING = "Hello, how can I assist you?"


class RelayState(str, Enum):
    AWAITING_MODEL_READY = "awaiting_model_ready"
    MODEL_READY = "model_ready"
    STREAMING = "streaming"
    CLOSED = "closed"


class ModelConnection(Protocol):
    @property
    def is_open(self) -> bool: ...

    async def connect(self) -> None: ...

    async def send(self, event: dict[str, Any]) -> None: ...

    def events(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...


class MediaStream(Protocol):
    """The inbound Twilio media stream as seen by the relay."""

    def messages(self) -> AsyncIterator[str]: ...

    async def send(self, frame: dict[str, Any]) -> None: ...


class BackendTranscriptSink(Protocol):
    async def persist_transcript(self, caller_number: str, transcript: str) -> None: ...


class MediaRelay:
    """Bridges one call's Twilio media stream with one realtime model session."""

    def __init__(
        self,
        *,
        store: CallSessionStore,
        model: ModelConnection,
        dispatcher: FunctionDispatcher,
        backend: BackendTranscriptSink,
        session_update: dict[str, Any],
        fallback_greeting: str = DEFAULT_STREAM_GREETING,
    ) -> None:
        self._store = store
        self._model = model
        self._dispatcher = dispatcher
        self._backend = backend
        self._session_update = session_update
        self._fallback_greeting = fallback_greeting

        self.state = RelayState.AWAITING_MODEL_READY
        self.session: CallSession | None = None
        self.stream_sid: str | None = None
        self.dropped_frames = 0
        self.first_utterance_sent = False
        self._queued_first_utterance: dict[str, Any] | None = None
        self._stream: MediaStream | None = None

    @property
    def closed(self) -> bool:
        return self.state is RelayState.CLOSED

    def attach(self, stream: MediaStream) -> None:
        self._stream = stream

    async def serve(self, stream: MediaStream) -> None:
        """Run the call until the inbound stream disconnects, then close."""

        self.attach(stream)
        model_task = asyncio.create_task(self._run_model())
        try:
            async for message in stream.messages():
                await self.handle_stream_message(message)
        finally:
            model_task.cancel()
            try:
                await model_task
            except asyncio.CancelledError:
                pass
            except Exception:
                LOGGER.exception("Realtime model pump failed (%s)", self._call_label)
            finally:
                await self.close()

    async def _run_model(self) -> None:
        try:
            await self._model.connect()
        except ModelConnectionError as exc:
            LOGGER.error("Realtime model unavailable; call continues without audio: %s", exc)
            return

        await self.on_model_open()
        try:
            async for message in self._model.events():
                await self.handle_model_message(message)
        except ModelConnectionError as exc:
            LOGGER.error("Error in the OpenAI WebSocket: %s", exc)

    # Inbound stream

    async def handle_stream_message(self, message: str) -> None:
        try:
            event = parse_twilio_ws_message(message)
        except MalformedMessageError as exc:
            LOGGER.error("Error parsing stream message: %s (message=%r)", exc, message[:200])
            return

        if isinstance(event, StreamStart):
            await self.on_stream_start(event)
        elif isinstance(event, StreamMedia):
            await self.on_stream_media(event)
        elif isinstance(event, StreamStop):
            LOGGER.info("Stream %s stopped", self.stream_sid)
        elif isinstance(event, UnknownStreamEvent):
            LOGGER.warning("Unknown stream event %r dropped", event.event)

    async def on_stream_start(self, event: StreamStart) -> None:
        start = event.start
        self.stream_sid = start.stream_sid
        params = start.custom_parameters
        caller_number = params.get("callerNumber") or UNKNOWN_CALLER
        greeting = params.get("firstMessage") or self._fallback_greeting

        call_sid = start.call_sid or f"stream_{start.stream_sid}"
        self.session = await self._store.get_or_create(call_sid)
        self.session.stream_sid = start.stream_sid
        self.session.caller_number = caller_number
        if not self.session.greeting:
            self.session.greeting = greeting
        LOGGER.info(
            "Stream started (call=%s, stream=%s, caller=%s)", call_sid, start.stream_sid, caller_number
        )

        if self.first_utterance_sent:
            LOGGER.warning("Duplicate start event for call %s ignored", call_sid)
            return

        self._queued_first_utterance = conversation_user_text(greeting)
        if self.state is RelayState.MODEL_READY:
            await self._release_first_utterance()

    async def on_stream_media(self, event: StreamMedia) -> None:
        if not self._model.is_open:
            self.dropped_frames += 1
            return
        await self._send_to_model(input_audio_append(event.media.payload))

    # Model

    async def on_model_open(self) -> None:
        if self.state is not RelayState.AWAITING_MODEL_READY:
            return
        self.state = RelayState.MODEL_READY
        await self._send_to_model(self._session_update)
        await self._release_first_utterance()

    async def _release_first_utterance(self) -> None:
        if self.state is not RelayState.MODEL_READY or self._queued_first_utterance is None:
            return
        first_utterance, self._queued_first_utterance = self._queued_first_utterance, None
        LOGGER.info("Sending queued first message")
        await self._send_to_model(first_utterance)
        await self._send_to_model(response_create())
        self.first_utterance_sent = True
        self.state = RelayState.STREAMING

    async def handle_model_message(self, message: str | bytes | dict[str, Any]) -> None:
        if self.closed:
            return
        try:
            event = parse_model_event(message)
        except MalformedMessageError as exc:
            LOGGER.error("Error processing OpenAI message: %s", exc)
            return

        if isinstance(event, AudioDelta):
            if event.delta and self.stream_sid:
                await self._send_to_stream(media_frame(self.stream_sid, event.delta))
        elif isinstance(event, SpeechStarted):
            await self._barge_in()
        elif isinstance(event, FunctionCallArgumentsDone):
            await self._dispatch(event)
        elif isinstance(event, ResponseDone):
            self._record_agent_turn(event)
        elif isinstance(event, InputTranscriptionCompleted):
            self._record_user_turn(event)
        elif isinstance(event, ErrorEvent):
            LOGGER.error("Realtime model error: %s", event.error)
        elif isinstance(event, OtherModelEvent) and event.type not in LOG_EVENT_TYPES:
            LOGGER.debug("Unhandled model event %s", event.type)

        if event.type in LOG_EVENT_TYPES:
            LOGGER.info("Received event: %s", event.type)

    async def _barge_in(self) -> None:
        LOGGER.info("Caller started speaking; interrupting playback for stream %s", self.stream_sid)
        if self.stream_sid:
            await self._send_to_stream(clear_frame(self.stream_sid))
        await self._send_to_model(response_cancel())

    async def _dispatch(self, call: FunctionCallArgumentsDone) -> None:
        if self.session is None:
            LOGGER.warning("Function %s called before the stream started; ignored", call.name)
            return
        for event in await self._dispatcher.dispatch(self.session, call):
            await self._send_to_model(event)

    def _record_agent_turn(self, event: ResponseDone) -> None:
        text = event.first_transcript()
        if not text:
            return
        if self.session is not None:
            self.session.append_transcript("agent", text.strip())
        LOGGER.info("Agent (%s): %s", self._call_label, text)

    def _record_user_turn(self, event: InputTranscriptionCompleted) -> None:
        text = event.transcript.strip()
        if not text:
            return
        if self.session is not None:
            self.session.append_transcript("user", text)
        LOGGER.info("User (%s): %s", self._call_label, text)

    # Close

    async def close(self) -> None:
        """Tear the call down; safe to call more than once."""

        if self.closed:
            return
        self.state = RelayState.CLOSED

        if self._model.is_open:
            try:
                await self._model.close()
            except Exception:
                LOGGER.exception("Closing the realtime model connection failed")

        LOGGER.info("Client disconnected (%s).", self._call_label)
        session = self.session
        if session is None:
            return

        transcript = session.render_transcript()
        LOGGER.info("Full transcript for %s:\n%s", session.call_sid, transcript)
        LOGGER.info("Final caller number: %s", session.caller_number)
        try:
            await self._backend.persist_transcript(session.caller_number, transcript)
        except WebhookError as exc:
            LOGGER.error("Failed to persist transcript for %s: %s", session.call_sid, exc)
        finally:
            await self._store.delete(session.call_sid)

    # Transport helpers

    @property
    def _call_label(self) -> str:
        return self.session.call_sid if self.session else "unknown call"

    async def _send_to_model(self, event: dict[str, Any]) -> None:
        if not self._model.is_open:
            LOGGER.debug("Model connection not open; dropping %s", event.get("type"))
            return
        try:
            await self._model.send(event)
        except ModelConnectionError as exc:
            LOGGER.error("Sending %s to the model failed: %s", event.get("type"), exc)

    async def _send_to_stream(self, frame: dict[str, Any]) -> None:
        if self._stream is None:
            return
        await self._stream.send(frame)
