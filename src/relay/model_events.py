"""Typed views of the OpenAI Realtime server events the relay acts on."""

from __future__ import annotations

import json
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from relay.errors import MalformedMessageError

# Events that are only logged; they never change relay state.
LOG_EVENT_TYPES: frozenset[str] = frozenset(
    {
        "response.content.done",
        "rate_limits.updated",
        "response.done",
        "input_audio_buffer.committed",
        "input_audio_buffer.speech_stopped",
        "input_audio_buffer.speech_started",
        "session.created",
        "response.text.done",
        "conversation.item.input_audio_transcription.completed",
    }
)


class ModelEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    TYPE: ClassVar[str] = ""

    type: str


class AudioDelta(ModelEvent):
    TYPE: ClassVar[str] = "response.audio.delta"

    delta: str = ""


class SpeechStarted(ModelEvent):
    TYPE: ClassVar[str] = "input_audio_buffer.speech_started"


class FunctionCallArgumentsDone(ModelEvent):
    TYPE: ClassVar[str] = "response.function_call_arguments.done"

    name: str
    arguments: str = "{}"
    call_id: str | None = None


class ResponseDone(ModelEvent):
    TYPE: ClassVar[str] = "response.done"

    response: dict[str, Any] = Field(default_factory=dict)

    def first_transcript(self) -> str | None:
        """First spoken transcript (or text part) across the response output."""

        for item in self.response.get("output") or []:
            if not isinstance(item, dict):
                continue
            for part in item.get("content") or []:
                if not isinstance(part, dict):
                    continue
                text = part.get("transcript") or part.get("text")
                if text:
                    return str(text)
        return None


class InputTranscriptionCompleted(ModelEvent):
    TYPE: ClassVar[str] = "conversation.item.input_audio_transcription.completed"

    transcript: str = ""


class ErrorEvent(ModelEvent):
    TYPE: ClassVar[str] = "error"

    error: dict[str, Any] = Field(default_factory=dict)


class OtherModelEvent(ModelEvent):
    """Any event type the relay has no dedicated handling for."""

    raw: dict[str, Any] = Field(default_factory=dict)


ParsedModelEvent = Union[
    AudioDelta,
    SpeechStarted,
    FunctionCallArgumentsDone,
    ResponseDone,
    InputTranscriptionCompleted,
    ErrorEvent,
    OtherModelEvent,
]

_EVENT_MODELS: dict[str, type[ModelEvent]] = {
    model.TYPE: model
    for model in (
        AudioDelta,
        SpeechStarted,
        FunctionCallArgumentsDone,
        ResponseDone,
        InputTranscriptionCompleted,
        ErrorEvent,
    )
}


def parse_model_event(data: str | bytes | dict[str, Any]) -> ParsedModelEvent:
    if isinstance(data, dict):
        message = data
    else:
        try:
            message = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedMessageError(f"Model event is not JSON: {exc}") from exc
    if not isinstance(message, dict) or not message.get("type"):
        raise MalformedMessageError("Model event has no type.")

    event_type = str(message["type"])
    model = _EVENT_MODELS.get(event_type)
    if model is None:
        return OtherModelEvent(type=event_type, raw=message)
    try:
        return model.model_validate(message)
    except ValidationError as exc:
        raise MalformedMessageError(f"Invalid {event_type!r} model event: {exc}") from exc


# Client events sent to the model.


def conversation_user_text(text: str) -> dict[str, Any]:
    return {
        "type": "conversation.item.create",
        "item": {
            "type": "message",
            "role": "user",
            "content": [{"type": "input_text", "text": text}],
        },
    }


def function_call_output(output: str, call_id: str | None = None) -> dict[str, Any]:
    item: dict[str, Any] = {"type": "function_call_output", "output": output}
    if call_id:
        item["call_id"] = call_id
    return {"type": "conversation.item.create", "item": item}


def response_create(instructions: str | None = None) -> dict[str, Any]:
    if instructions is None:
        return {"type": "response.create"}
    return {
        "type": "response.create",
        "response": {"modalities": ["text", "audio"], "instructions": instructions},
    }


def input_audio_append(payload: str) -> dict[str, Any]:
    return {"type": "input_audio_buffer.append", "audio": payload}


def response_cancel() -> dict[str, Any]:
    return {"type": "response.cancel"}
