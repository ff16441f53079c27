"""Routes model function calls to the backend and builds the events fed back."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError, field_validator

from relay.errors import WebhookError
from relay.model_events import FunctionCallArgumentsDone, function_call_output, response_create
from relay.session import CallSession
from relay.tools import BOOK_TOW, QUESTION_AND_ANSWER, STORE_COMPLAINT

if TYPE_CHECKING:  # pragma: no cover
    from db.repository import ComplaintRepository
    from integrations.backend_webhook import BackendWebhook

LOGGER = logging.getLogger(__name__)

NO_ANSWER_MESSAGE = "I'm sorry, I couldn't find an answer to that question."
NO_BOOKING_MESSAGE = "I'm sorry, I couldn't book the tow service at this time."
COMPLAINT_ACKNOWLEDGEMENT = (
    "Thank you. Your complaint has been recorded and our team will review it."
)
APOLOGY_INSTRUCTIONS = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Is there anything else I can help you with?"
)

ModelEvents = list[dict[str, Any]]


class _Arguments(BaseModel):
    @field_validator("*")
    @classmethod
    def not_blank(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("Argument may not be empty.")
        return text


class QuestionArguments(_Arguments):
    question: str


class TowArguments(_Arguments):
    address: str


class ComplaintArguments(_Arguments):
    complaint: str


def apology_events() -> ModelEvents:
    return [response_create(APOLOGY_INSTRUCTIONS)]


class FunctionDispatcher:
    """Executes the named actions the realtime model may call."""

    def __init__(
        self,
        webhook: BackendWebhook,
        *,
        complaints: ComplaintRepository | None = None,
    ) -> None:
        self._webhook = webhook
        self._handlers: dict[str, Callable[[CallSession, dict[str, Any], str | None], Awaitable[ModelEvents]]] = {
            QUESTION_AND_ANSWER: self._question_and_answer,
            BOOK_TOW: self._book_tow,
        }
        if complaints is not None:
            self._handlers[STORE_COMPLAINT] = partial(self._store_complaint, complaints)

    @property
    def function_names(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def dispatch(self, session: CallSession, call: FunctionCallArgumentsDone) -> ModelEvents:
        """Run one function call; never raises, failures become a spoken apology."""

        handler = self._handlers.get(call.name)
        if handler is None:
            LOGGER.warning("Ignoring call to unknown function %r (call %s)", call.name, session.call_sid)
            return []

        LOGGER.info("Function called: %s (call %s)", call.name, session.call_sid)
        try:
            arguments = json.loads(call.arguments or "{}")
            if not isinstance(arguments, dict):
                raise ValueError("Function arguments must be a JSON object.")
            return await handler(session, arguments, call.call_id)
        except (json.JSONDecodeError, ValueError, ValidationError) as exc:
            LOGGER.error("Invalid arguments for %s: %s", call.name, exc)
        except WebhookError as exc:
            LOGGER.error("Backend failed during %s: %s", call.name, exc)
        except Exception:
            LOGGER.exception("Function %s failed", call.name)
        return apology_events()

    async def _question_and_answer(
        self, session: CallSession, arguments: dict[str, Any], call_id: str | None
    ) -> ModelEvents:
        question = QuestionArguments.model_validate(arguments).question
        reply = await self._webhook.answer_question(question, session.thread_id)
        answer = reply.message or NO_ANSWER_MESSAGE

        if reply.thread:
            session.thread_id = reply.thread
            LOGGER.info("Updated thread ID for call %s: %s", session.call_sid, session.thread_id)

        return [
            function_call_output(answer, call_id),
            response_create(
                f'Respond to the user\'s question "{question}" based on this information: '
                f"{answer}. Be concise and friendly."
            ),
        ]

    async def _book_tow(
        self, session: CallSession, arguments: dict[str, Any], call_id: str | None
    ) -> ModelEvents:
        address = TowArguments.model_validate(arguments).address
        reply = await self._webhook.book_tow(session.caller_number, address)
        status = reply.message or NO_BOOKING_MESSAGE
        return [
            function_call_output(status, call_id),
            response_create(
                f"Inform the user about the tow booking status: {status}. Be concise and friendly."
            ),
        ]

    async def _store_complaint(
        self,
        complaints: ComplaintRepository,
        session: CallSession,
        arguments: dict[str, Any],
        call_id: str | None,
    ) -> ModelEvents:
        complaint = ComplaintArguments.model_validate(arguments).complaint
        await complaints.add_complaint(
            caller_number=session.caller_number,
            complaint=complaint,
            call_sid=session.call_sid,
        )
        LOGGER.info("Stored complaint from %s (call %s)", session.caller_number, session.call_sid)
        return [function_call_output(COMPLAINT_ACKNOWLEDGEMENT, call_id)]
