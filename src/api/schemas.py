"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class StatusResponse(BaseModel):
    message: str


class ComplaintResponse(BaseModel):
    id: int
    caller_number: str
    call_sid: str | None
    complaint: str
    created_at: datetime
