import logging
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.backend import RequestOrchestrator
from api.dependencies import get_orchestrator
from api.metrics import (
    CONTENT_SOURCE_TOTAL,
    EVENTS_TOTAL,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_TOTAL,
)
from calendar_filler.errors import RequestRejected
from calendar_filler.models import EventRequest

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/events")
async def create_events(
    payload: EventRequest,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    start = time.time()
    try:
        summary = await orchestrator.create_events(payload)
    except RequestRejected as e:
        REQUESTS_TOTAL.labels(endpoint="/api/events", status="rejected").inc()
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception:
        logger.exception("Error creating events")
        REQUESTS_TOTAL.labels(endpoint="/api/events", status="error").inc()
        raise HTTPException(
            status_code=500,
            detail="Failed to create events. An unexpected error occurred.",
        )

    # Prometheus counters (best-effort)
    try:
        REQUESTS_TOTAL.labels(endpoint="/api/events", status="processed").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/api/events").observe(time.time() - start)
        EVENTS_TOTAL.labels(outcome="created").inc(summary.successful_count)
        EVENTS_TOTAL.labels(outcome="failed").inc(summary.failed_count)
        CONTENT_SOURCE_TOTAL.labels(source=summary.content_source).inc()
    except Exception as e:
        logger.debug(f"Metrics update failed: {e}")

    message = "Events created successfully"
    if summary.failed_count:
        message = f"Created {summary.successful_count} of {summary.requested_count} events"
    return {"message": message, **summary.model_dump(mode="json", by_alias=True)}


@router.get("/api/events/created")
async def list_created_events(
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Events previously created by this service (last/next 30 days)."""
    try:
        events = await orchestrator.list_created_events()
    except Exception:
        logger.exception("Error fetching events")
        raise HTTPException(status_code=500, detail="Failed to fetch events")

    return {
        "events": [
            {
                "id": e.id,
                "title": e.title,
                "start": e.start.isoformat(),
                "end": e.end.isoformat(),
                "userInput": e.user_input or "general activities",
                "htmlLink": e.html_link,
            }
            for e in events
        ],
        "total": len(events),
    }


@router.delete("/api/events")
async def delete_created_events(
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
) -> dict:
    """Delete every event this service created (last/next 60 days)."""
    try:
        results = await orchestrator.delete_created_events()
    except Exception:
        logger.exception("Error deleting events")
        raise HTTPException(status_code=500, detail="Failed to delete events")

    deleted = sum(r.deleted for r in results)
    return {
        "message": "Event deletion completed",
        "totalFound": len(results),
        "successfullyDeleted": deleted,
        "failedDeletions": len(results) - deleted,
        "results": [r.model_dump(exclude_none=True) for r in results],
    }
