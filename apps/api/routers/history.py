"""Watch history routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.history import list_watch_history
from services.validation import parse_limit, parse_offset

router = APIRouter()


@router.get("/history")
async def watch_history(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    movies, total = await list_watch_history(db, parse_limit(limit, 20, 100), parse_offset(offset))
    return {"movies": movies, "total": total}
