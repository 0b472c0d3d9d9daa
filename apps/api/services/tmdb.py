"""TMDB catalog metadata client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config import require_tmdb_api_key, settings

logger = logging.getLogger(__name__)

_MOVIE_FIELDS = (
    "id",
    "title",
    "overview",
    "release_date",
    "poster_path",
    "backdrop_path",
    "vote_average",
    "vote_count",
    "popularity",
    "genre_ids",
)
_DETAIL_FIELDS = _MOVIE_FIELDS + (
    "runtime",
    "genres",
    "production_companies",
    "budget",
    "revenue",
    "imdb_id",
    "credits",
)


class TMDBError(Exception):
    pass


class TMDBNotFoundError(TMDBError):
    pass


def _pick(payload: Dict[str, Any], fields) -> Dict[str, Any]:
    return {name: payload.get(name) for name in fields}


def _transform_listing(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "results": [_pick(movie, _MOVIE_FIELDS) for movie in payload.get("results") or []],
        "total_results": int(payload.get("total_results") or 0),
        "page": int(payload.get("page") or 1),
        "total_pages": int(payload.get("total_pages") or 0),
    }


class TMDBClient:
    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "TMDBClient":
        self._client = httpx.AsyncClient(
            base_url=settings.TMDB_BASE_URL,
            headers={
                "Authorization": f"Bearer {self._api_key or require_tmdb_api_key()}",
                "Accept": "application/json",
            },
            timeout=20.0,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("TMDBClient not entered as context manager")
        return self._client

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = await self.client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise TMDBError(f"TMDB_ERROR: {exc}") from exc
        if resp.status_code == 404:
            raise TMDBNotFoundError(path)
        if resp.status_code >= 400:
            raise TMDBError(f"TMDB_ERROR: {resp.status_code}")
        return resp.json()

    async def search(self, query: str, page: int = 1) -> Dict[str, Any]:
        payload = await self._get(
            "/search/movie",
            {"query": query, "page": page, "include_adult": "true"},
        )
        return _transform_listing(payload)

    async def popular(self, page: int = 1) -> Dict[str, Any]:
        return _transform_listing(await self._get("/movie/popular", {"page": page}))

    async def top_rated(self, page: int = 1) -> Dict[str, Any]:
        return _transform_listing(await self._get("/movie/top_rated", {"page": page}))

    async def details(self, title_id: int) -> Dict[str, Any]:
        payload = await self._get(f"/movie/{title_id}", {"append_to_response": "credits"})
        return _pick(payload, _DETAIL_FIELDS)

    async def similar(self, title_id: int, page: int = 1) -> Dict[str, Any]:
        return _transform_listing(await self._get(f"/movie/{title_id}/similar", {"page": page}))


async def fetch_title_details(title_id: int) -> Dict[str, Any]:
    async with TMDBClient() as tmdb:
        return await tmdb.details(title_id)
