"""NZBGeek release search client."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from config import require_nzbgeek_api_key, settings
from services.releases import (
    MAX_RELEASES,
    Release,
    ReleaseFeedError,
    parse_release_feed,
    rank_releases,
)
from services.validation import DEFAULT_QUALITY_PREFERENCE

logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ReleaseSearchError(Exception):
    pass


def _imdb_digits(imdb_id: str) -> str:
    value = str(imdb_id or "").strip()
    return value[2:] if value.startswith("tt") else value


async def search_releases(
    imdb_id: str,
    preference: str = DEFAULT_QUALITY_PREFERENCE,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Release]:
    """Search the indexer for a movie by IMDb id and return the top ranked releases."""
    params = {
        "t": "movie",
        "imdbid": _imdb_digits(imdb_id),
        "apikey": require_nzbgeek_api_key(),
    }
    async with httpx.AsyncClient(
        headers={"User-Agent": _USER_AGENT},
        timeout=30.0,
        transport=transport,
    ) as client:
        try:
            resp = await client.get(settings.NZBGEEK_BASE_URL, params=params)
        except httpx.HTTPError as exc:
            raise ReleaseSearchError(f"NZBGEEK_ERROR: {exc}") from exc

    if resp.status_code >= 400:
        raise ReleaseSearchError(f"NZBGEEK_ERROR: {resp.status_code}")

    try:
        releases = parse_release_feed(resp.text)
    except ReleaseFeedError as exc:
        raise ReleaseSearchError(str(exc)) from exc

    logger.info("Release search for imdb=%s returned %s candidates", imdb_id, len(releases))
    return rank_releases(releases, preference)[:MAX_RELEASES]
