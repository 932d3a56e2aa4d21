"""Advisor router: the only path to the external advisory service."""

from fastapi import APIRouter, Depends

from ajl.config import Settings
from ajl.dependencies import get_settings
from ajl.schemas.advisor import AdvisorQuery
from ajl.schemas.common import Envelope
from ajl.services import advisor_service

router = APIRouter(prefix="/internal/advisor", tags=["advisor"])


@router.post("/query", response_model=Envelope[dict])
async def query_advisor(body: AdvisorQuery, settings: Settings = Depends(get_settings)):
    """Forward to the advisor. 503 when it is disabled or unreachable."""
    answer = await advisor_service.query(settings, task=body.task, payload=body.payload)
    return Envelope(data=answer)
