"""Realtime session configuration and the function schemas offered to the model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from prompts.loader import build_instructions

if TYPE_CHECKING:  # pragma: no cover
    from config.settings import Settings

QUESTION_AND_ANSWER = "question_and_answer"
BOOK_TOW = "book_tow"
STORE_COMPLAINT = "store_complaint"

AUDIO_FORMAT = "g711_ulaw"


def _function_tool(name: str, description: str, argument: str) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "description": description,
        "parameters": {
            "type": "object",
            "properties": {argument: {"type": "string"}},
            "required": [argument],
        },
    }


QUESTION_AND_ANSWER_TOOL = _function_tool(
    QUESTION_AND_ANSWER,
    "Get answers to customer questions about automotive services and repairs",
    "question",
)
BOOK_TOW_TOOL = _function_tool(BOOK_TOW, "Book a tow service for a customer", "address")
STORE_COMPLAINT_TOOL = _function_tool(
    STORE_COMPLAINT,
    "Record a customer complaint for review by the team",
    "complaint",
)


def build_tools(*, enable_complaints: bool = False) -> list[dict[str, Any]]:
    tools = [QUESTION_AND_ANSWER_TOOL, BOOK_TOW_TOOL]
    if enable_complaints:
        tools.append(STORE_COMPLAINT_TOOL)
    return tools


def build_session_update(settings: Settings) -> dict[str, Any]:
    """The `session.update` event sent once when the model socket opens."""

    enable_complaints = settings.enable_complaint_logging
    return {
        "type": "session.update",
        "session": {
            "turn_detection": {"type": "server_vad"},
            "input_audio_format": AUDIO_FORMAT,
            "output_audio_format": AUDIO_FORMAT,
            "voice": settings.realtime_voice,
            "instructions": build_instructions(enable_complaints=enable_complaints),
            "modalities": ["text", "audio"],
            "temperature": settings.realtime_temperature,
            "input_audio_transcription": {"model": settings.realtime_transcription_model},
            "tools": build_tools(enable_complaints=enable_complaints),
            "tool_choice": "auto",
        },
    }
