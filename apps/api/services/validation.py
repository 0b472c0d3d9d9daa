"""Request validation and identifier helpers shared by the acquisition routes."""

from __future__ import annotations

import secrets
import string
import time
from typing import Optional

from services.errors import invalid_input


JOB_ID_PREFIX = "job_"
QUALITY_PREFERENCES = ("720p", "1080p", "4K")
DEFAULT_QUALITY_PREFERENCE = "1080p"
FETCH_MODES = ("auto", "manual")
LISTABLE_JOB_STATUSES = ("queued", "starting", "downloading", "preparing", "ready", "error")

_JOB_ID_ALPHABET = string.ascii_lowercase + string.digits


def parse_title_id(raw: Optional[str]) -> int:
    """Parse a positive integer catalog id from a path segment."""
    text = str(raw or "").strip()
    if not text:
        raise invalid_input("Title ID is required")
    try:
        title_id = int(text, 10)
    except ValueError:
        raise invalid_input("Invalid title ID") from None
    if title_id <= 0:
        raise invalid_input("Invalid title ID")
    return title_id


def is_job_id(value: Optional[str]) -> bool:
    return bool(value) and str(value).startswith(JOB_ID_PREFIX)


def validate_job_id(job_id: Optional[str]) -> str:
    if not job_id:
        raise invalid_input("Job ID is required")
    if not job_id.startswith(JOB_ID_PREFIX) or len(job_id) < 10:
        raise invalid_input("Invalid job ID format")
    return job_id


def generate_job_id() -> str:
    """Return an opaque id of the form job_<epoch-ms>_<8 random chars>."""
    suffix = "".join(secrets.choice(_JOB_ID_ALPHABET) for _ in range(8))
    return f"{JOB_ID_PREFIX}{int(time.time() * 1000)}_{suffix}"


def validate_fetch_mode(mode: Optional[str], release_id: Optional[str]) -> str:
    if mode not in FETCH_MODES:
        raise invalid_input("Mode must be 'auto' or 'manual'")
    if mode == "manual" and not release_id:
        raise invalid_input(
            "Manual mode requires 'release_id'. Use the releases endpoint first to get available releases."
        )
    return mode


def validate_quality_preference(quality: Optional[str]) -> Optional[str]:
    if not quality:
        return None
    if quality not in QUALITY_PREFERENCES:
        raise invalid_input("Quality preference must be '720p', '1080p', or '4K'")
    return quality


def parse_quality_preference(quality: Optional[str]) -> str:
    if quality in QUALITY_PREFERENCES:
        return quality
    return DEFAULT_QUALITY_PREFERENCE


def parse_page(raw: Optional[str]) -> int:
    """Lenient page parsing; anything unusable becomes page 1."""
    try:
        page = int(str(raw or "").strip(), 10)
    except ValueError:
        return 1
    return page if page >= 1 else 1


def parse_limit(raw: Optional[str], default: int = 20, maximum: int = 100) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        limit = int(str(raw).strip(), 10)
    except ValueError:
        raise invalid_input("Invalid limit parameter") from None
    if limit < 1:
        raise invalid_input("Invalid limit parameter")
    return min(limit, maximum)


def parse_offset(raw: Optional[str], default: int = 0) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        offset = int(str(raw).strip(), 10)
    except ValueError:
        raise invalid_input("Invalid offset parameter") from None
    if offset < 0:
        raise invalid_input("Invalid offset parameter")
    return offset


def validate_status_filter(status: Optional[str]) -> Optional[str]:
    if not status:
        return None
    if status not in LISTABLE_JOB_STATUSES:
        raise invalid_input("Invalid status filter")
    return status
