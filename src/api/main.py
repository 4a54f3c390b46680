import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.dependencies import init_services
from api.metrics import CACHE_ENTRIES
from api.routers import events, ops

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
logger = logging.getLogger(__name__)

CACHE_SWEEP_INTERVAL_S = float(os.getenv("CACHE_SWEEP_INTERVAL_S", "60"))


async def _cache_sweeper(services) -> None:
    """Drop expired content cache entries so memory stays bounded."""
    while True:
        await asyncio.sleep(CACHE_SWEEP_INTERVAL_S)
        removed = services.cache.purge_expired()
        CACHE_ENTRIES.set(len(services.cache))
        if removed:
            logger.debug(f"Purged {removed} expired cache entries")


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = init_services()
    sweeper = asyncio.create_task(_cache_sweeper(services))
    logger.info("Calendar Filler started")
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        logger.info("Calendar Filler stopped")


app = FastAPI(title="Calendar Filler", lifespan=lifespan)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


_DATE_FIELDS = {"startDate", "endDate", "start_date", "end_date"}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    for error in errors:
        loc = error.get("loc", ())
        if loc and loc[-1] in _DATE_FIELDS:
            return "Invalid date format. Use YYYY-MM-DD format."
    if not errors:
        return "Invalid request body"
    location = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body") or "body"
    return f"Invalid request: {location}: {errors[0].get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


app.include_router(events.router)
app.include_router(ops.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
