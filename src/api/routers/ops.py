import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from api import state
from api.dependencies import get_calendar_store, get_services
from api.metrics import CACHE_ENTRIES
from integration.calendar_integration import CalendarStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(
    services: state.SharedServices = Depends(get_services),
    store: Optional[CalendarStore] = Depends(get_calendar_store),
) -> dict:
    """Health check endpoint for container orchestration."""
    return {
        "status": "healthy",
        "provider": services.provider_name,
        "calendar_connected": store is not None,
        "cache_entries": len(services.cache),
    }


@router.get("/metrics")
async def metrics(services: state.SharedServices = Depends(get_services)) -> Response:
    """
    Prometheus scrape endpoint.
    """
    CACHE_ENTRIES.set(len(services.cache))
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
