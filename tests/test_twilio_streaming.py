from __future__ import annotations

import json

import pytest

from integrations.twilio_streaming import (
    StreamMedia,
    StreamStart,
    StreamStop,
    UnknownStreamEvent,
    clear_frame,
    media_frame,
    parse_twilio_ws_message,
)
from relay.errors import MalformedMessageError


def test_parse_start_reads_ids_and_custom_parameters():
    event = parse_twilio_ws_message(
        json.dumps(
            {
                "event": "start",
                "sequenceNumber": "1",
                "start": {
                    "accountSid": "AC1",
                    "streamSid": "MZ1",
                    "callSid": "CA1",
                    "tracks": ["inbound"],
                    "customParameters": {"firstMessage": "Hi", "callerNumber": "+15551234567"},
                },
                "streamSid": "MZ1",
            }
        )
    )

    assert isinstance(event, StreamStart)
    assert event.start.stream_sid == "MZ1"
    assert event.start.call_sid == "CA1"
    assert event.start.custom_parameters["callerNumber"] == "+15551234567"


def test_parse_media_and_stop():
    media = parse_twilio_ws_message(
        json.dumps({"event": "media", "media": {"track": "inbound", "chunk": "2", "payload": "/v8="}})
    )
    stop = parse_twilio_ws_message(json.dumps({"event": "stop", "stop": {"callSid": "CA1"}}))

    assert isinstance(media, StreamMedia)
    assert media.media.payload == "/v8="
    assert isinstance(stop, StreamStop)


def test_unknown_event_is_tagged_not_rejected():
    event = parse_twilio_ws_message(json.dumps({"event": "dtmf", "dtmf": {"digit": "1"}}))
    assert isinstance(event, UnknownStreamEvent)
    assert event.event == "dtmf"


@pytest.mark.parametrize(
    "message",
    ["not json", "[1, 2]", json.dumps({"event": "media", "media": {}}), json.dumps({"event": "start"})],
)
def test_malformed_frames_raise(message):
    with pytest.raises(MalformedMessageError):
        parse_twilio_ws_message(message)


def test_outbound_frames_use_stream_sid_envelope():
    assert media_frame("MZ1", "AAAA") == {"event": "media", "streamSid": "MZ1", "media": {"payload": "AAAA"}}
    assert clear_frame("MZ1") == {"event": "clear", "streamSid": "MZ1"}
