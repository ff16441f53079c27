from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from integrations.backend_webhook import AnswerReply, BookingReply  # noqa: E402
from relay.errors import ModelConnectionError, WebhookError  # noqa: E402


class FakeWebhook:
    """Records every backend call; each route can be told to fail or reply."""

    def __init__(
        self,
        *,
        greeting: str | None = None,
        answer: AnswerReply | None = None,
        booking: BookingReply | None = None,
        fail: set[str] | None = None,
    ) -> None:
        self.greeting = greeting
        self.answer = answer or AnswerReply(message="We are open 8am to 6pm.")
        self.booking = booking or BookingReply(message="A tow truck is on the way.")
        self.fail = fail or set()
        self.configured = True
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise WebhookError(f"{name} failed")

    async def fetch_greeting(self, caller_number: str) -> str | None:
        self._record("fetch_greeting", caller_number)
        return self.greeting

    async def persist_transcript(self, caller_number: str, transcript: str) -> None:
        self._record("persist_transcript", caller_number, transcript)

    async def answer_question(self, question: str, thread_id: str) -> AnswerReply:
        self._record("answer_question", question, thread_id)
        return self.answer

    async def book_tow(self, caller_number: str, address: str) -> BookingReply:
        self._record("book_tow", caller_number, address)
        return self.booking


class FakeModel:
    """In-memory stand-in for the realtime model socket."""

    def __init__(self, *, events: list[Any] | None = None, fail_connect: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.open = False
        self.closed = False
        self.fail_connect = fail_connect
        self._events = list(events or [])
        self._opened: asyncio.Event | None = None

    @property
    def is_open(self) -> bool:
        return self.open

    def opened(self) -> asyncio.Event:
        if self._opened is None:
            self._opened = asyncio.Event()
        return self._opened

    async def connect(self) -> None:
        if self.fail_connect:
            raise ModelConnectionError("connection refused")
        self.open = True
        self.opened().set()

    async def send(self, event: dict[str, Any]) -> None:
        self.sent.append(event)

    async def events(self):
        for event in self._events:
            yield event
        # Stay connected until the relay tears the call down.
        await asyncio.Event().wait()

    async def close(self) -> None:
        self.open = False
        self.closed = True

    def sent_types(self) -> list[str]:
        return [event["type"] for event in self.sent]


class FakeStream:
    def __init__(self, messages: list[str] | None = None) -> None:
        self.frames: list[dict[str, Any]] = []
        self._messages = list(messages or [])

    async def messages(self):
        for message in self._messages:
            yield message

    async def send(self, frame: dict[str, Any]) -> None:
        self.frames.append(frame)


@pytest.fixture(scope="session")
def app(tmp_path_factory: pytest.TempPathFactory):
    tmp_dir = tmp_path_factory.mktemp("runtime")
    db_path = tmp_dir / "relay_test.db"

    # Must be set before importing modules that create the SQLAlchemy engine.
    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{db_path.as_posix()}"
    os.environ["DATA_DIR"] = str(tmp_dir)
    os.environ["AUTO_CREATE_DB_SCHEMA"] = "true"
    os.environ["OPENAI_API_KEY"] = "sk-test"
    os.environ.pop("BACKEND_WEBHOOK_URL", None)
    os.environ.pop("PUBLIC_BASE_URL", None)

    import importlib

    # Ensure clean import with the test settings.
    for module_name in [
        "config.settings",
        "db.base",
        "db.models",
        "db.repository",
        "api.dependencies",
        "api.twilio_routes",
        "api.routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def fake_webhook() -> FakeWebhook:
    return FakeWebhook(fail={"fetch_greeting"})


@pytest.fixture()
def client(app, fake_webhook):
    import api.dependencies as deps
    from relay.session import CallSessionStore

    store = CallSessionStore()
    app.dependency_overrides[deps.get_backend_webhook] = lambda: fake_webhook
    app.dependency_overrides[deps.get_session_store] = lambda: store
    app.state.test_store = store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
