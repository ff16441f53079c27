"""SQLAlchemy models for complaints captured during calls."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Complaint(Base):
    """A complaint logged by the assistant on the caller's behalf."""

    __tablename__ = "complaints"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    caller_number: Mapped[str] = mapped_column(String(64), index=True)
    call_sid: Mapped[str | None] = mapped_column(String(64), index=True)
    complaint: Mapped[str] = mapped_column(Text())
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(timezone.utc))
