import io
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import pytest_asyncio
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, get_db
from main import app
from models.acquisition_job import AcquisitionJob


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "movies_on_demand.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def api_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    with patch("services.acquisition_queue.async_session_maker", session_maker):
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        ) as client:
            yield client
    app.dependency_overrides.pop(get_db, None)


async def insert_job(session_maker, **fields) -> AcquisitionJob:
    now = datetime.now(timezone.utc)
    values = {
        "job_id": "job_1700000000000_abcdefgh",
        "title_id": 603,
        "status": "queued",
        "release_title": "The.Matrix.1999.1080p.BluRay.x264-GROUP",
        "release_id": "rel-1",
        "created_at": now,
        "updated_at": now,
    }
    values.update(fields)
    job = AcquisitionJob(**values)
    async with session_maker() as session:
        session.add(job)
        await session.commit()
    return job


class FakeS3Client:
    """Minimal in-memory stand-in for the boto3 S3 client."""

    def __init__(self, objects=None, content_type="video/mp4"):
        self.objects = dict(objects or {})
        self.content_type = content_type
        self.get_calls = []
        self.head_error_code = None

    def _missing(self, operation):
        return ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, operation)

    def head_object(self, Bucket, Key):
        if self.head_error_code:
            raise ClientError({"Error": {"Code": self.head_error_code, "Message": "Denied"}}, "HeadObject")
        if Key not in self.objects:
            raise self._missing("HeadObject")
        return {"ContentLength": len(self.objects[Key]), "ContentType": self.content_type}

    def get_object(self, Bucket, Key, Range=None):
        self.get_calls.append((Key, Range))
        if Key not in self.objects:
            raise self._missing("GetObject")
        data = self.objects[Key]
        response = {"ContentType": self.content_type}
        if Range:
            start, end = Range.replace("bytes=", "").split("-")
            start, end = int(start), min(int(end), len(data) - 1)
            chunk = data[start:end + 1]
            response["ContentRange"] = f"bytes {start}-{end}/{len(data)}"
        else:
            chunk = data
        response["ContentLength"] = len(chunk)
        response["Body"] = io.BytesIO(chunk)
        return response


@pytest.fixture
def fake_s3():
    client = FakeS3Client()
    with patch("services.storage._get_s3_client", return_value=client):
        yield client


@pytest.fixture
def make_job(session_maker):
    async def _make(**fields) -> AcquisitionJob:
        return await insert_job(session_maker, **fields)

    return _make
