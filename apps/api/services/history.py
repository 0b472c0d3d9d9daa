"""Watch history projection over watched acquisition jobs."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.acquisition_job import AcquisitionJob
from models.title_metadata import TitleMetadata
from services.acquisition import isoformat_utc

HISTORY_STATUSES = ("ready", "deleted")


def _history_filter():
    return (
        AcquisitionJob.status.in_(HISTORY_STATUSES),
        AcquisitionJob.last_watched_at.is_not(None),
    )


async def list_watch_history(db: AsyncSession, limit: int, offset: int) -> Tuple[List[Dict[str, Any]], int]:
    """Return one entry per watched job, most recently watched first, plus the total count."""
    rows = await db.execute(
        select(AcquisitionJob, TitleMetadata)
        .outerjoin(TitleMetadata, TitleMetadata.title_id == AcquisitionJob.title_id)
        .where(*_history_filter())
        .order_by(AcquisitionJob.last_watched_at.desc(), AcquisitionJob.job_id)
        .limit(limit)
        .offset(offset)
    )
    total = await db.scalar(select(func.count()).select_from(AcquisitionJob).where(*_history_filter()))

    movies = []
    for job, metadata in rows.all():
        movies.append(
            {
                "title_id": job.title_id,
                "title": (metadata.title if metadata else None) or "",
                "poster_path": metadata.poster_path if metadata else None,
                "last_watched_at": isoformat_utc(job.last_watched_at),
                "job_id": job.job_id,
                "status": job.status,
            }
        )
    return movies, int(total or 0)
