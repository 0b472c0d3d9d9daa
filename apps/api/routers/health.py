"""
Service health: store, acquisition queue and collaborator configuration.
"""

import asyncio

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config import settings
from database import engine
from services.acquisition_queue import get_acquisition_queue

router = APIRouter()


def _collaborators() -> dict:
    return {
        "TMDB_API_KEY": settings.TMDB_API_KEY,
        "NZBGEEK_API_KEY": settings.NZBGEEK_API_KEY,
        "R2_ENDPOINT": settings.R2_ENDPOINT,
    }


def _queued_work_items() -> int:
    return get_acquisition_queue().count


@router.get("/health")
async def health_check():
    """
    Check the job store and the download queue.
    Collaborator keys are only reported as configured or missing, never called.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "acquisition_queue": "unknown",
        "collaborators": {
            name: "configured" if value else "missing"
            for name, value in _collaborators().items()
        },
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    try:
        pending = await asyncio.to_thread(_queued_work_items)
        health_status["acquisition_queue"] = {"name": settings.ACQUISITION_QUEUE_NAME, "pending": pending}
    except Exception as e:
        health_status["acquisition_queue"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check():
    """Acquisitions and streaming both need the catalog, the indexer and storage."""
    missing = [name for name, value in _collaborators().items() if not value]
    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    return {"alive": True}
