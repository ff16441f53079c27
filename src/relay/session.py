from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

LOGGER = logging.getLogger(__name__)

TranscriptSpeaker = Literal["user", "agent"]

_SPEAKER_LABELS: dict[str, str] = {"user": "User", "agent": "Agent"}

UNKNOWN_CALLER = "Unknown"


@dataclass(frozen=True, slots=True)
class TranscriptLine:
    speaker: TranscriptSpeaker
    text: str

    def render(self) -> str:
        return f"{_SPEAKER_LABELS[self.speaker]}: {self.text}\n"


@dataclass
class CallSession:
    """Per-call record shared by the intake webhook and the media relay."""

    call_sid: str
    caller_number: str = UNKNOWN_CALLER
    greeting: str = ""
    call_details: dict[str, Any] = field(default_factory=dict)
    stream_sid: str | None = None
    thread_id: str = ""
    transcript: list[TranscriptLine] = field(default_factory=list)
    closed: bool = False

    def append_transcript(self, speaker: TranscriptSpeaker, text: str) -> bool:
        """Append a line; returns False once the session has been closed."""

        if self.closed:
            LOGGER.warning("Ignoring %s transcript line for closed call %s", speaker, self.call_sid)
            return False
        self.transcript.append(TranscriptLine(speaker=speaker, text=text))
        return True

    def render_transcript(self) -> str:
        return "".join(line.render() for line in self.transcript)


class CallSessionStore:
    """In-memory store of live call sessions keyed by call SID.

    Note: This is a single-process store. Sessions are only removed by `delete`,
    so a relay that dies before its close handler runs leaks its record for the
    lifetime of the process.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._sessions: dict[str, CallSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, call_sid: object) -> bool:
        return call_sid in self._sessions

    async def create(
        self,
        call_sid: str,
        *,
        caller_number: str = UNKNOWN_CALLER,
        greeting: str = "",
        call_details: dict[str, Any] | None = None,
    ) -> CallSession:
        session = CallSession(
            call_sid=call_sid,
            caller_number=caller_number,
            greeting=greeting,
            call_details=dict(call_details or {}),
        )
        async with self._lock:
            if call_sid in self._sessions:
                LOGGER.warning("Replacing existing session for call %s", call_sid)
            self._sessions[call_sid] = session
        return session

    async def get(self, call_sid: str) -> CallSession | None:
        async with self._lock:
            return self._sessions.get(call_sid)

    async def get_or_create(self, call_sid: str) -> CallSession:
        async with self._lock:
            session = self._sessions.get(call_sid)
            if session is None:
                LOGGER.info("No intake session for call %s; starting a fresh one", call_sid)
                session = CallSession(call_sid=call_sid)
                self._sessions[call_sid] = session
            return session

    async def delete(self, call_sid: str) -> CallSession | None:
        async with self._lock:
            session = self._sessions.pop(call_sid, None)
        if session is not None:
            session.closed = True
        return session
