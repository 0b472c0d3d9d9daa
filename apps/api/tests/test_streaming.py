import pytest

from services.storage import storage_key_for
from services.streaming import parse_range_header


JOB_ID = "job_1700000000000_readyjob"
MOVIE_BYTES = bytes(index % 251 for index in range(1000))


@pytest.fixture
def stored_movie(fake_s3):
    fake_s3.objects[storage_key_for(JOB_ID)] = MOVIE_BYTES
    return fake_s3


def test_parse_range_header_variants():
    assert parse_range_header("bytes=200-299", 1000) == (200, 299)
    assert parse_range_header("bytes=900-", 1000) == (900, 999)
    assert parse_range_header("bytes=900-5000", 1000) == (900, 999)
    assert parse_range_header(" bytes=0-0 ", 1000) == (0, 0)
    assert parse_range_header("bytes=1500-", 1000) is None
    assert parse_range_header("bytes=300-200", 1000) is None
    assert parse_range_header("bytes=-500", 1000) is None
    assert parse_range_header("items=0-10", 1000) is None
    assert parse_range_header(None, 1000) is None
    assert parse_range_header("bytes=0-10", 0) is None


@pytest.mark.asyncio
async def test_partial_content_for_closed_range(api_client, make_job, stored_movie):
    await make_job(job_id=JOB_ID, status="ready", progress=100)

    resp = await api_client.get(f"/stream/{JOB_ID}", headers={"Range": "bytes=200-299"})

    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 200-299/1000"
    assert resp.headers["content-length"] == "100"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["content-type"].startswith("video/mp4")
    assert resp.content == MOVIE_BYTES[200:300]
    assert stored_movie.get_calls == [(storage_key_for(JOB_ID), "bytes=200-299")]


@pytest.mark.asyncio
async def test_open_ended_range_runs_to_end_of_file(api_client, make_job, stored_movie):
    await make_job(job_id=JOB_ID, status="ready", progress=100)

    resp = await api_client.get(f"/stream/{JOB_ID}", headers={"Range": "bytes=900-"})

    assert resp.status_code == 206
    assert resp.headers["content-range"] == "bytes 900-999/1000"
    assert resp.headers["content-length"] == "100"
    assert resp.content == MOVIE_BYTES[900:]


@pytest.mark.asyncio
@pytest.mark.parametrize("range_header", [None, "bytes=abc", "bytes=5000-"])
async def test_full_body_without_usable_range(api_client, make_job, stored_movie, range_header):
    await make_job(job_id=JOB_ID, status="ready", progress=100)

    headers = {"Range": range_header} if range_header else {}
    resp = await api_client.get(f"/stream/{JOB_ID}", headers=headers)

    assert resp.status_code == 200
    assert resp.headers["content-length"] == "1000"
    assert resp.headers["accept-ranges"] == "bytes"
    assert "content-range" not in resp.headers
    assert resp.content == MOVIE_BYTES


@pytest.mark.asyncio
async def test_stream_refuses_jobs_that_are_not_ready(api_client, make_job, stored_movie):
    await make_job(job_id=JOB_ID, status="downloading", progress=60)

    resp = await api_client.get(f"/stream/{JOB_ID}", headers={"Range": "bytes=0-99"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Movie not found or not ready", "code": "NOT_FOUND"}

    descriptor = await api_client.get(f"/titles/{JOB_ID}/stream")
    assert descriptor.status_code == 400
    assert descriptor.json()["error"] == "Movie not ready for streaming. Current status: downloading"

    assert stored_movie.get_calls == []


@pytest.mark.asyncio
async def test_stream_rejects_malformed_job_id(api_client, fake_s3):
    resp = await api_client.get("/stream/not-a-job")
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_missing_storage_object_is_a_storage_error(api_client, make_job, fake_s3):
    await make_job(job_id=JOB_ID, status="ready", progress=100)

    resp = await api_client.get(f"/stream/{JOB_ID}")
    assert resp.status_code == 502
    assert resp.json()["code"] == "STORAGE_ERROR"

    descriptor = await api_client.get("/titles/603/stream")
    assert descriptor.status_code == 502
    assert descriptor.json()["code"] == "STORAGE_ERROR"


@pytest.mark.asyncio
async def test_descriptor_resolves_title_and_records_watch(api_client, make_job, stored_movie):
    await make_job(job_id=JOB_ID, status="ready", progress=100)

    before = (await api_client.get(f"/jobs/{JOB_ID}")).json()
    assert before["last_watched_at"] is None

    resp = await api_client.get("/titles/603/stream")
    assert resp.status_code == 200
    assert resp.json() == {
        "stream_url": f"/stream/{JOB_ID}",
        "content_type": "video/mp4",
        "file_size": 1000,
    }

    by_job = await api_client.get(f"/titles/{JOB_ID}/stream")
    assert by_job.json()["stream_url"] == f"/stream/{JOB_ID}"

    after = (await api_client.get(f"/jobs/{JOB_ID}")).json()
    assert after["last_watched_at"] is not None


@pytest.mark.asyncio
async def test_descriptor_unknown_title_is_not_found(api_client, fake_s3):
    resp = await api_client.get("/titles/999/stream")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_storage_access_failure_keeps_error_shape(api_client, make_job, stored_movie):
    await make_job(job_id=JOB_ID, status="ready", progress=100)
    stored_movie.head_error_code = "403"

    resp = await api_client.get(f"/stream/{JOB_ID}", headers={"Range": "bytes=0-99"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}

    descriptor = await api_client.get(f"/titles/{JOB_ID}/stream")
    assert descriptor.status_code == 500
    assert descriptor.json()["code"] == "INTERNAL_ERROR"
    assert stored_movie.get_calls == []
