"""Catalog discovery routes (search, charts, title details)."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.acquisition import find_latest_job
from services.catalog import remember_title_metadata
from services.errors import invalid_input, not_found, upstream_error
from services.tmdb import TMDBClient, TMDBError, TMDBNotFoundError
from services.validation import parse_page, parse_title_id

logger = logging.getLogger(__name__)

router = APIRouter()


async def _call_catalog(operation: Callable[[TMDBClient], Awaitable[Dict[str, Any]]]) -> Dict[str, Any]:
    try:
        async with TMDBClient() as tmdb:
            return await operation(tmdb)
    except TMDBNotFoundError:
        raise not_found("Title not found") from None
    except (TMDBError, httpx.HTTPError, ValueError) as exc:
        logger.error("Catalog request failed: %s", exc)
        raise upstream_error("Failed to retrieve catalog data") from exc


@router.get("/search")
async def search_titles(query: Optional[str] = None, page: Optional[str] = None):
    """Search the catalog by title."""
    text = (query or "").strip()
    if not text:
        raise invalid_input("Query parameter 'query' is required")
    return await _call_catalog(lambda tmdb: tmdb.search(text, parse_page(page)))


@router.get("/popular")
async def popular_titles(page: Optional[str] = None):
    return await _call_catalog(lambda tmdb: tmdb.popular(parse_page(page)))


@router.get("/top")
async def top_rated_titles(page: Optional[str] = None):
    return await _call_catalog(lambda tmdb: tmdb.top_rated(parse_page(page)))


@router.get("/titles/{title_id}")
async def title_details(title_id: str, db: AsyncSession = Depends(get_db)):
    """Catalog details for a title plus the status of its most recent acquisition."""
    parsed_id = parse_title_id(title_id)
    details = await _call_catalog(lambda tmdb: tmdb.details(parsed_id))

    await remember_title_metadata(db, details)
    await db.commit()

    job = await find_latest_job(db, parsed_id)
    job_status = None
    if job is not None and job.status != "deleted":
        job_status = {
            "job_id": job.job_id,
            "status": job.status,
            "progress": job.progress,
            "error_message": job.error_message,
        }
    return {**details, "job_status": job_status}


@router.get("/titles/{title_id}/similar")
async def similar_titles(title_id: str, page: Optional[str] = None):
    parsed_id = parse_title_id(title_id)
    return await _call_catalog(lambda tmdb: tmdb.similar(parsed_id, parse_page(page)))
