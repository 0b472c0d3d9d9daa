"""Acquisition orchestration: create jobs, pick releases, hand work to the download queue."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.acquisition_job import ACTIVE_JOB_STATUSES, AcquisitionJob
from services.acquisition_queue import build_queue_message, enqueue_acquisition_job
from services.catalog import remember_title_metadata
from services.errors import internal_error, not_found, upstream_error
from services.nzbgeek import ReleaseSearchError, search_releases
from services.releases import Release, select_best, select_by_id
from services.tmdb import TMDBError, TMDBNotFoundError, fetch_title_details
from services.validation import (
    LISTABLE_JOB_STATUSES,
    generate_job_id,
    parse_quality_preference,
    validate_fetch_mode,
    validate_quality_preference,
)

logger = logging.getLogger(__name__)

ENQUEUE_FAILURE_MESSAGE = "Failed to enqueue job"


@dataclass
class AcquisitionResult:
    job: AcquisitionJob
    created: bool


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def serialize_job(job: AcquisitionJob) -> Dict[str, Any]:
    return {
        "job_id": job.job_id,
        "title_id": job.title_id,
        "status": job.status,
        "progress": job.progress,
        "error_message": job.error_message,
        "release_title": job.release_title,
        "release_id": job.release_id,
        "created_at": isoformat_utc(job.created_at),
        "updated_at": isoformat_utc(job.updated_at),
        "ready_at": isoformat_utc(job.ready_at),
        "expires_at": isoformat_utc(job.expires_at),
        "last_watched_at": isoformat_utc(job.last_watched_at),
    }


async def find_active_job(db: AsyncSession, title_id: int) -> Optional[AcquisitionJob]:
    result = await db.execute(
        select(AcquisitionJob)
        .where(
            AcquisitionJob.title_id == title_id,
            AcquisitionJob.status.in_(ACTIVE_JOB_STATUSES),
        )
        .order_by(AcquisitionJob.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def find_latest_job(db: AsyncSession, title_id: int) -> Optional[AcquisitionJob]:
    result = await db.execute(
        select(AcquisitionJob)
        .where(AcquisitionJob.title_id == title_id)
        .order_by(AcquisitionJob.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def get_job(db: AsyncSession, job_id: str) -> AcquisitionJob:
    job = await db.get(AcquisitionJob, job_id)
    if job is None:
        raise not_found("Job not found")
    return job


async def list_jobs(db: AsyncSession, status: Optional[str] = None) -> List[AcquisitionJob]:
    query = select(AcquisitionJob)
    if status:
        query = query.where(AcquisitionJob.status == status)
    else:
        query = query.where(AcquisitionJob.status.in_(LISTABLE_JOB_STATUSES))
    query = query.order_by(AcquisitionJob.updated_at.desc()).limit(max(int(settings.JOB_LIST_LIMIT), 1))
    result = await db.execute(query)
    return list(result.scalars().all())


async def resolve_external_id(db: AsyncSession, title_id: int) -> Optional[str]:
    """Look the title up in the catalog, cache its display fields, return its IMDb id."""
    try:
        details = await fetch_title_details(title_id)
    except TMDBNotFoundError:
        raise not_found("Title not found in catalog") from None
    except (TMDBError, httpx.HTTPError, ValueError) as exc:
        logger.error("Catalog lookup failed for title %s: %s", title_id, exc)
        raise upstream_error("Failed to retrieve title information") from exc

    await remember_title_metadata(db, details)
    await db.commit()
    imdb_id = str(details.get("imdb_id") or "").strip()
    return imdb_id or None


async def find_releases(imdb_id: str, preference: str) -> List[Release]:
    try:
        return await search_releases(imdb_id, preference)
    except (ReleaseSearchError, httpx.HTTPError, ValueError) as exc:
        logger.error("Release search failed for imdb=%s: %s", imdb_id, exc)
        raise upstream_error("Failed to search for releases") from exc


def _choose_release(
    releases: List[Release],
    mode: str,
    release_id: Optional[str],
    preference: str,
) -> Release:
    if mode == "manual":
        chosen = select_by_id(releases, str(release_id))
        if chosen is None:
            raise not_found("Release ID not found")
        return chosen
    chosen = select_best(releases, preference)
    if chosen is None:
        raise not_found("No suitable release found")
    return chosen


async def _mark_enqueue_failed(db: AsyncSession, job: AcquisitionJob) -> None:
    try:
        job.status = "error"
        job.error_message = ENQUEUE_FAILURE_MESSAGE
        job.updated_at = utcnow()
        await db.commit()
    except Exception:
        logger.exception("Failed to mark job %s as error after enqueue failure", job.job_id)
        await db.rollback()


async def request_acquisition(
    db: AsyncSession,
    title_id: int,
    mode: Optional[str],
    release_id: Optional[str] = None,
    quality_preference: Optional[str] = None,
) -> AcquisitionResult:
    """Start an acquisition for a title, or return the job already working on it."""
    validate_fetch_mode(mode, release_id)
    validate_quality_preference(quality_preference)
    preference = parse_quality_preference(quality_preference)

    existing = await find_active_job(db, title_id)
    if existing is not None:
        logger.info(
            "Existing active job %s (%s) found for title %s",
            existing.job_id,
            existing.status,
            title_id,
        )
        return AcquisitionResult(job=existing, created=False)

    imdb_id = await resolve_external_id(db, title_id)
    if not imdb_id:
        raise not_found("Title does not have an IMDb ID, cannot search releases")

    releases = await find_releases(imdb_id, preference)
    if not releases:
        raise not_found("No releases available for this title")

    chosen = _choose_release(releases, mode, release_id, preference)
    logger.info(
        "Selected release %s (%s) for title %s in %s mode",
        chosen.id,
        chosen.title,
        title_id,
        mode,
    )

    now = utcnow()
    job = AcquisitionJob(
        job_id=generate_job_id(),
        title_id=title_id,
        status="queued",
        release_title=chosen.title,
        release_id=chosen.id,
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request won the active-title slot; attach to its job.
        await db.rollback()
        winner = await find_active_job(db, title_id)
        if winner is None:
            raise internal_error("Failed to create job record") from None
        logger.info("Concurrent acquisition for title %s resolved to job %s", title_id, winner.job_id)
        return AcquisitionResult(job=winner, created=False)
    except Exception as exc:
        await db.rollback()
        logger.exception("Failed to insert job for title %s", title_id)
        raise internal_error("Failed to create job record") from exc
    await db.refresh(job)
    logger.info("Job %s created for title %s", job.job_id, title_id)

    message = build_queue_message(
        job_id=job.job_id,
        title_id=title_id,
        release_id=chosen.id,
        download_url=chosen.download_url,
        release_title=chosen.title,
    )
    try:
        enqueue_acquisition_job(message)
    except Exception as exc:
        logger.error("Failed to enqueue job %s: %s", job.job_id, exc)
        await _mark_enqueue_failed(db, job)
        raise internal_error("Failed to enqueue job for processing") from exc

    logger.info("Job %s enqueued for title %s", job.job_id, title_id)
    return AcquisitionResult(job=job, created=True)
