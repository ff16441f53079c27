"""Domain-specific exceptions for relay operations.

These exceptions are safe to import from API layers without opening any connection.
"""

from __future__ import annotations


class RelayError(Exception):
    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationError(RelayError):
    default_detail = "Required configuration is missing."


class WebhookError(RelayError):
    status_code = 502
    default_detail = "Backend webhook request failed."


class WebhookNotConfiguredError(WebhookError):
    status_code = 503
    default_detail = "Backend webhook URL is not configured."


class ModelConnectionError(RelayError):
    status_code = 503
    default_detail = "Realtime model connection unavailable."


class MalformedMessageError(RelayError):
    status_code = 400
    default_detail = "Malformed stream message."
