"""Internal callback routes used by the download worker."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.progress import report_progress, verify_worker_token

router = APIRouter()


class ProgressCallbackRequest(BaseModel):
    job_id: Optional[str] = None
    status: Optional[str] = None
    progress: Optional[int] = None
    error_message: Optional[str] = None
    sequence: Optional[int] = None


@router.post("/progress")
async def progress_callback(
    request: ProgressCallbackRequest,
    x_worker_token: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Apply one worker status update to its job."""
    verify_worker_token(x_worker_token)
    outcome = await report_progress(
        db,
        job_id=request.job_id,
        status=request.status,
        progress=request.progress,
        error_message=request.error_message,
        sequence=request.sequence,
    )
    return {"success": True, "applied": outcome.applied}
