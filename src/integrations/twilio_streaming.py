from __future__ import annotations

import json
import logging
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from relay.errors import MalformedMessageError

LOGGER = logging.getLogger(__name__)


class _StreamModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StreamConnected(_StreamModel):
    event: str = "connected"
    protocol: str | None = None


class StreamStartDetails(_StreamModel):
    stream_sid: str = Field(alias="streamSid")
    call_sid: str | None = Field(default=None, alias="callSid")
    custom_parameters: dict[str, str] = Field(default_factory=dict, alias="customParameters")


class StreamStart(_StreamModel):
    event: str = "start"
    start: StreamStartDetails


class StreamMediaPayload(_StreamModel):
    payload: str
    track: str | None = None


class StreamMedia(_StreamModel):
    event: str = "media"
    media: StreamMediaPayload


class StreamMark(_StreamModel):
    event: str = "mark"
    mark: dict[str, Any] = Field(default_factory=dict)


class StreamStop(_StreamModel):
    event: str = "stop"
    stop: dict[str, Any] = Field(default_factory=dict)


class UnknownStreamEvent(_StreamModel):
    event: str
    raw: dict[str, Any] = Field(default_factory=dict)


TwilioStreamEvent = Union[StreamConnected, StreamStart, StreamMedia, StreamMark, StreamStop, UnknownStreamEvent]

_EVENT_MODELS: dict[str, type[_StreamModel]] = {
    "connected": StreamConnected,
    "start": StreamStart,
    "media": StreamMedia,
    "mark": StreamMark,
    "stop": StreamStop,
}


def parse_twilio_ws_message(text: str) -> TwilioStreamEvent:
    """Decode one Twilio Media Streams frame into its tagged event model."""

    try:
        message = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedMessageError(f"Stream frame is not JSON: {exc}") from exc
    if not isinstance(message, dict):
        raise MalformedMessageError("Stream frame is not a JSON object.")

    event = str(message.get("event") or "")
    model = _EVENT_MODELS.get(event)
    if model is None:
        return UnknownStreamEvent(event=event, raw=message)
    try:
        return model.model_validate(message)
    except ValidationError as exc:
        raise MalformedMessageError(f"Invalid {event!r} stream frame: {exc}") from exc


def media_frame(stream_sid: str, payload: str) -> dict[str, Any]:
    return {"event": "media", "streamSid": stream_sid, "media": {"payload": payload}}


def clear_frame(stream_sid: str) -> dict[str, Any]:
    """Ask Twilio to drop any outbound audio it has buffered for the stream."""

    return {"event": "clear", "streamSid": stream_sid}
