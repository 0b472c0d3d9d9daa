"""Usenet release listing routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.acquisition import find_releases, resolve_external_id
from services.validation import parse_quality_preference, parse_title_id, validate_quality_preference

router = APIRouter()


@router.get("/titles/{title_id}/releases")
async def list_title_releases(
    title_id: str,
    quality: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """List ranked release candidates for manual selection."""
    parsed_id = parse_title_id(title_id)
    preference = parse_quality_preference(validate_quality_preference(quality))

    imdb_id = await resolve_external_id(db, parsed_id)
    if not imdb_id:
        return {"releases": [], "total": 0}

    releases = await find_releases(imdb_id, preference)
    return {
        "releases": [release.to_dict() for release in releases],
        "total": len(releases),
    }
