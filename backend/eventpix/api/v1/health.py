from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from eventpix.core.cache import CACHE_ERRORS, get_store
from eventpix.core.config import settings
from eventpix.db import engine

router = APIRouter()


@router.get("/", summary="Health check")
async def read_health() -> dict[str, str]:
    """Return basic service health information."""
    return {"status": "ok"}


@router.get("/ready", summary="Readiness check")
async def read_ready():
    """Check that the database answers. A failing cache only degrades the response."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "database": "disconnected",
                "error": str(e) if settings.ENVIRONMENT != "production" else "Database connection failed",
            },
        )

    try:
        cache_state = "connected" if await get_store().ping() else "degraded"
    except CACHE_ERRORS:
        cache_state = "degraded"
    return {"status": "ready", "database": "connected", "cache": cache_state}
