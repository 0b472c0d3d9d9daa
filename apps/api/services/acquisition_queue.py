"""Durable acquisition job queue helpers (Redis/RQ)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from redis import Redis
from rq import Queue
from rq.job import Job
from sqlalchemy import select

from config import settings
from database import async_session_maker
from models.acquisition_job import AcquisitionJob

logger = logging.getLogger(__name__)

IN_PROGRESS_STATUSES = ("queued", "starting", "downloading", "preparing")
QUEUE_MESSAGE_FIELDS = ("job_id", "title_id", "release_id", "download_url", "release_title")


def get_redis_connection() -> Redis:
    """Build Redis connection used by RQ."""
    return Redis.from_url(settings.REDIS_URL)


def get_acquisition_queue() -> Queue:
    """Return the queue consumed by the external download worker."""
    return Queue(
        name=settings.ACQUISITION_QUEUE_NAME,
        connection=get_redis_connection(),
        default_timeout=3600,
    )


def build_queue_message(
    job_id: str,
    title_id: int,
    release_id: str,
    download_url: str,
    release_title: str,
) -> Dict[str, Any]:
    return {
        "job_id": job_id,
        "title_id": title_id,
        "release_id": release_id,
        "download_url": download_url,
        "release_title": release_title,
    }


def enqueue_acquisition_job(message: Dict[str, Any]) -> Job:
    """Publish a work item for the download worker; delivery is at-least-once."""
    missing = [name for name in QUEUE_MESSAGE_FIELDS if message.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Queue message missing fields: {', '.join(missing)}")
    queue = get_acquisition_queue()
    return queue.enqueue(
        settings.ACQUISITION_WORKER_ENTRYPOINT,
        message,
        job_id=f"acquire:{message['job_id']}",
        job_timeout=6 * 3600,
        result_ttl=86400,
        failure_ttl=86400,
    )


async def recover_stalled_acquisition_jobs(max_age_minutes: int) -> int:
    """Mark acquisitions with no worker update since the cutoff as failed."""
    if max_age_minutes <= 0:
        return 0
    now = datetime.now(timezone.utc)
    cutoff = now - timedelta(minutes=max_age_minutes)
    async with async_session_maker() as db:
        result = await db.execute(
            select(AcquisitionJob).where(
                AcquisitionJob.status.in_(IN_PROGRESS_STATUSES),
                AcquisitionJob.updated_at < cutoff,
            )
        )
        jobs = result.scalars().all()
        for job in jobs:
            job.status = "error"
            job.error_message = "Acquisition was interrupted. Request the title again to retry."
            job.updated_at = now
        if jobs:
            await db.commit()
            logger.warning("Marked %s stalled acquisition jobs as error", len(jobs))
        return len(jobs)
