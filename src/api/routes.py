"""FastAPI routes: health check and the complaint log."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_complaint_repository
from api.schemas import ComplaintResponse, StatusResponse
from api.twilio_routes import router as twilio_router
from config.settings import get_settings
from db.repository import ComplaintRepository

LOGGER = logging.getLogger(__name__)

health_router = APIRouter(tags=["health"])

router = APIRouter()
router.include_router(twilio_router)


@health_router.get("/", response_model=StatusResponse)
async def health() -> StatusResponse:
    return StatusResponse(message="Twilio Media Stream Server is running!")


@router.get("/complaints", response_model=list[ComplaintResponse])
async def list_complaints(
    caller_number: str | None = None,
    repo: ComplaintRepository = Depends(get_complaint_repository),
) -> list[ComplaintResponse]:
    if not get_settings().enable_complaint_logging:
        raise HTTPException(status_code=404, detail="Complaint logging disabled")

    complaints = await repo.list_complaints(caller_number)
    return [
        ComplaintResponse(
            id=complaint.id,
            caller_number=complaint.caller_number,
            call_sid=complaint.call_sid,
            complaint=complaint.complaint,
            created_at=complaint.created_at,
        )
        for complaint in complaints
    ]
