from unittest.mock import patch

import pytest


@pytest.mark.asyncio
async def test_readiness_lists_missing_collaborators(api_client):
    with patch("routers.health.settings.TMDB_API_KEY", "tmdb-key"), patch(
        "routers.health.settings.NZBGEEK_API_KEY", ""
    ), patch("routers.health.settings.R2_ENDPOINT", ""):
        resp = await api_client.get("/health/ready")

    assert resp.status_code == 503
    assert resp.json() == {"ready": False, "missing": ["NZBGEEK_API_KEY", "R2_ENDPOINT"]}

    with patch("routers.health.settings.TMDB_API_KEY", "tmdb-key"), patch(
        "routers.health.settings.NZBGEEK_API_KEY", "geek-key"
    ), patch("routers.health.settings.R2_ENDPOINT", "https://r2.test"):
        resp = await api_client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json() == {"ready": True}


@pytest.mark.asyncio
async def test_health_reports_store_and_queue(api_client, session_maker):
    with patch("routers.health.engine", session_maker.kw["bind"]), patch(
        "routers.health.get_acquisition_queue"
    ) as get_queue:
        get_queue.return_value.count = 2
        healthy = (await api_client.get("/health")).json()

    assert healthy["status"] == "healthy"
    assert healthy["database"] == "up"
    assert healthy["acquisition_queue"]["pending"] == 2

    with patch("routers.health.engine", session_maker.kw["bind"]), patch(
        "routers.health.get_acquisition_queue", side_effect=ConnectionError("redis down")
    ):
        degraded = (await api_client.get("/health")).json()

    assert degraded["status"] == "degraded"
    assert degraded["acquisition_queue"].startswith("down:")
