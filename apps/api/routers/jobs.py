"""Acquisition job router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.acquisition import get_job, list_jobs, request_acquisition, serialize_job
from services.validation import parse_title_id, validate_job_id, validate_status_filter

router = APIRouter()


class FetchTitleRequest(BaseModel):
    mode: Optional[str] = None
    release_id: Optional[str] = Field(default=None, max_length=512)
    quality_preference: Optional[str] = None


class FetchTitleResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    title_id: int
    status: str
    progress: Optional[int] = None
    error_message: Optional[str] = None
    release_title: Optional[str] = None
    release_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    ready_at: Optional[str] = None
    expires_at: Optional[str] = None
    last_watched_at: Optional[str] = None


@router.post("/titles/{title_id}/fetch", status_code=202, response_model=FetchTitleResponse)
async def fetch_title(
    title_id: str,
    request: FetchTitleRequest,
    db: AsyncSession = Depends(get_db),
):
    """Start acquiring a title, or attach to the job already working on it."""
    parsed_id = parse_title_id(title_id)
    result = await request_acquisition(
        db,
        parsed_id,
        mode=request.mode,
        release_id=request.release_id,
        quality_preference=request.quality_preference,
    )
    return FetchTitleResponse(job_id=result.job.job_id, status=result.job.status)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, db: AsyncSession = Depends(get_db)):
    job = await get_job(db, validate_job_id(job_id))
    return serialize_job(job)


@router.get("/jobs")
async def list_acquisition_jobs(status: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """List jobs newest-updated first; without a filter, deleted jobs are hidden."""
    jobs = await list_jobs(db, validate_status_filter(status))
    return {"jobs": [serialize_job(job) for job in jobs]}
