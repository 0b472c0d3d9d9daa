"""Applies status callbacks from the external download worker to job rows."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models.acquisition_job import JOB_STATUSES, TERMINAL_JOB_STATUSES, AcquisitionJob
from services.acquisition import utcnow
from services.errors import invalid_input, not_found, unauthorized

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Unknown error"


@dataclass
class ProgressOutcome:
    job: AcquisitionJob
    applied: bool
    reason: Optional[str] = None


def verify_worker_token(token: Optional[str]) -> None:
    """Enforce the shared callback secret when one is configured."""
    expected = (settings.WORKER_CALLBACK_SECRET or "").strip()
    if not expected:
        return
    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        raise unauthorized("Invalid worker token")


def _clamp_progress(progress: Optional[int]) -> Optional[int]:
    if progress is None:
        return None
    return max(0, min(int(progress), 100))


def _is_stale(job: AcquisitionJob, status: str, sequence: Optional[int]) -> Optional[str]:
    if sequence is not None and job.callback_sequence is not None and sequence <= job.callback_sequence:
        return "sequence"
    if job.status in TERMINAL_JOB_STATUSES and status not in TERMINAL_JOB_STATUSES:
        return "regression"
    return None


async def report_progress(
    db: AsyncSession,
    job_id: Optional[str],
    status: Optional[str],
    progress: Optional[int] = None,
    error_message: Optional[str] = None,
    sequence: Optional[int] = None,
) -> ProgressOutcome:
    """Record one worker status update; stale or out-of-order updates are ignored."""
    if not job_id or not status:
        raise invalid_input("Missing required fields: job_id, status")
    if status not in JOB_STATUSES:
        raise invalid_input("Invalid status")

    job = await db.get(AcquisitionJob, job_id)
    if job is None:
        raise not_found("Job not found")

    stale = _is_stale(job, status, sequence)
    if stale:
        logger.warning(
            "Ignoring stale callback for job %s: %s -> %s (%s)",
            job_id,
            job.status,
            status,
            stale,
        )
        return ProgressOutcome(job=job, applied=False, reason=stale)

    now = utcnow()
    progress = _clamp_progress(progress)
    job.status = status
    job.updated_at = now
    if sequence is not None:
        job.callback_sequence = sequence

    if status == "ready":
        job.progress = 100 if progress is None else progress
        job.error_message = error_message
        job.ready_at = now
        job.expires_at = now + timedelta(hours=settings.READY_TTL_HOURS)
    elif status == "error":
        job.progress = progress
        job.error_message = error_message or DEFAULT_ERROR_MESSAGE
    else:
        job.progress = progress

    try:
        await db.commit()
    except IntegrityError:
        # A newer job for the same title already holds the active slot.
        await db.rollback()
        logger.warning("Ignoring %s callback for job %s: title has a newer active job", status, job_id)
        job = await db.get(AcquisitionJob, job_id)
        return ProgressOutcome(job=job, applied=False, reason="superseded")
    logger.info("Job %s -> %s (progress=%s)", job_id, status, job.progress)
    return ProgressOutcome(job=job, applied=True)
