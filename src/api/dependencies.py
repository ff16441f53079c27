"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules. Tests swap any of
these out through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from relay.session import CallSessionStore

if TYPE_CHECKING:  # pragma: no cover
    from db.repository import ComplaintRepository
    from integrations.backend_webhook import BackendWebhook
    from integrations.openai_realtime import RealtimeConnection


@lru_cache(maxsize=1)
def _session_store_factory() -> CallSessionStore:
    return CallSessionStore()


def get_session_store() -> CallSessionStore:
    return _session_store_factory()


@lru_cache(maxsize=1)
def _backend_webhook_factory() -> BackendWebhook:
    from integrations.backend_webhook import BackendWebhook

    return BackendWebhook()


def get_backend_webhook() -> BackendWebhook:
    return _backend_webhook_factory()


def get_complaint_repository() -> ComplaintRepository:
    # Lazy import so the database engine is only built once settings are final.
    from db.repository import ComplaintRepository

    return ComplaintRepository()


def get_realtime_connection() -> RealtimeConnection:
    """A fresh, unconnected model socket per media stream."""

    from integrations.openai_realtime import RealtimeConnection

    return RealtimeConnection()
