"""Resolve ready jobs to stored movie files and plan full or partial responses."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.acquisition_job import AcquisitionJob
from services.acquisition import find_latest_job, utcnow
from services.errors import invalid_input, not_found, storage_error
from services.storage import ObjectBody, get_object_async, head_object_async, storage_key_for
from services.validation import is_job_id, parse_title_id, validate_job_id

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^\s*bytes=(\d+)-(\d*)\s*$")


@dataclass
class StreamPlan:
    status_code: int
    headers: Dict[str, str]
    body: ObjectBody


def stream_url_for(job_id: str) -> str:
    return f"/stream/{job_id}"


def _object_key(job: AcquisitionJob) -> str:
    return job.storage_key or storage_key_for(job.job_id)


def parse_range_header(header: Optional[str], file_size: int) -> Optional[Tuple[int, int]]:
    """Return an inclusive (start, end) span, or None to serve the whole file.

    Malformed or unsatisfiable ranges fall back to a full response so strict
    players still get playable bytes.
    """
    if not header or file_size <= 0:
        return None
    match = _RANGE_RE.match(header)
    if not match:
        return None
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_size - 1
    end = min(end, file_size - 1)
    if start > end:
        return None
    return start, end


async def resolve_stream(db: AsyncSession, identifier: str) -> Dict[str, object]:
    """Find the playable job for a job id or title id and describe its stream."""
    if is_job_id(identifier):
        job = await db.get(AcquisitionJob, identifier)
    else:
        job = await find_latest_job(db, parse_title_id(identifier))

    if job is None:
        raise not_found("Job not found")
    if job.status != "ready":
        raise invalid_input(f"Movie not ready for streaming. Current status: {job.status}")

    info = await head_object_async(_object_key(job))
    if info is None:
        logger.error("Job %s is ready but %s is missing from storage", job.job_id, _object_key(job))
        raise storage_error("Movie file not found in storage")

    job.last_watched_at = utcnow()
    await db.commit()

    return {
        "stream_url": stream_url_for(job.job_id),
        "content_type": info.content_type,
        "file_size": info.size,
    }


async def plan_stream(db: AsyncSession, job_id: str, range_header: Optional[str]) -> StreamPlan:
    """Open the stored file for a ready job, honouring a single bytes= range."""
    validate_job_id(job_id)
    result = await db.execute(
        select(AcquisitionJob).where(
            AcquisitionJob.job_id == job_id,
            AcquisitionJob.status == "ready",
        )
    )
    job = result.scalar_one_or_none()
    if job is None:
        raise not_found("Movie not found or not ready")

    key = _object_key(job)
    info = await head_object_async(key)
    if info is None:
        raise storage_error("Movie file not found in storage")

    byte_range = parse_range_header(range_header, info.size)
    body = await get_object_async(key, byte_range)
    if body is None:
        raise storage_error("Failed to read video range" if byte_range else "Movie file not found in storage")

    headers = {
        "Content-Type": info.content_type,
        "Accept-Ranges": "bytes",
    }
    if byte_range is None:
        headers["Content-Length"] = str(info.size)
        return StreamPlan(status_code=200, headers=headers, body=body)

    start, end = byte_range
    headers["Content-Length"] = str(end - start + 1)
    headers["Content-Range"] = f"bytes {start}-{end}/{info.size}"
    return StreamPlan(status_code=206, headers=headers, body=body)
