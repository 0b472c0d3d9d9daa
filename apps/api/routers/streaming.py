"""Streaming routes: resolve a playable file and byte-serve it."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.streaming import plan_stream, resolve_stream

router = APIRouter()


@router.get("/titles/{identifier}/stream")
async def get_stream_descriptor(identifier: str, db: AsyncSession = Depends(get_db)):
    """Accepts a title id or a job id; the latest job for a title is used."""
    return await resolve_stream(db, identifier)


@router.get("/stream/{job_id}")
async def stream_video(
    job_id: str,
    range_header: Optional[str] = Header(default=None, alias="Range"),
    db: AsyncSession = Depends(get_db),
):
    plan = await plan_stream(db, job_id, range_header)
    return StreamingResponse(
        plan.body.iter_chunks(),
        status_code=plan.status_code,
        headers=plan.headers,
        media_type=plan.headers["Content-Type"],
    )
