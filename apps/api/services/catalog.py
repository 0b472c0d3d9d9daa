"""Local cache of catalog display metadata."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models.title_metadata import TitleMetadata


async def remember_title_metadata(db: AsyncSession, details: Dict[str, Any]) -> Optional[TitleMetadata]:
    """Upsert display fields from a catalog details payload. Caller commits."""
    try:
        title_id = int(details.get("id") or 0)
    except (TypeError, ValueError):
        return None
    if title_id <= 0:
        return None

    row = await db.get(TitleMetadata, title_id)
    if row is None:
        row = TitleMetadata(title_id=title_id)
        db.add(row)
    row.title = details.get("title")
    row.poster_path = details.get("poster_path")
    row.backdrop_path = details.get("backdrop_path")
    row.overview = details.get("overview")
    row.imdb_id = details.get("imdb_id") or row.imdb_id
    row.updated_at = datetime.now(timezone.utc)
    return row
