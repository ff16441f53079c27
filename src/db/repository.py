"""Repository utilities for persisting complaints."""

from __future__ import annotations

from sqlalchemy import select

from db.base import AsyncSessionFactory
from db.models import Complaint


class ComplaintRepository:
    """Async repository encapsulating complaint storage."""

    async def add_complaint(
        self,
        *,
        caller_number: str,
        complaint: str,
        call_sid: str | None = None,
    ) -> Complaint:
        async with AsyncSessionFactory() as session:
            record = Complaint(
                caller_number=caller_number,
                complaint=complaint,
                call_sid=call_sid,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def list_complaints(self, caller_number: str | None = None) -> list[Complaint]:
        async with AsyncSessionFactory() as session:
            query = select(Complaint).order_by(Complaint.created_at, Complaint.id)
            if caller_number is not None:
                query = query.where(Complaint.caller_number == caller_number)
            result = await session.execute(query)
            return list(result.scalars().all())
