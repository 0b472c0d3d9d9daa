"""R2 (S3-compatible) object storage access for finished movie files."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterator, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from config import settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "video/mp4"
STREAM_CHUNK_SIZE = 1024 * 1024
_MISSING_CODES = ("404", "NoSuchKey", "NotFound")


@dataclass(frozen=True)
class ObjectInfo:
    key: str
    size: int
    content_type: str


@dataclass
class ObjectBody:
    body: Any

    def iter_chunks(self, chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[bytes]:
        try:
            while True:
                chunk = self.body.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            close = getattr(self.body, "close", None)
            if close is not None:
                close()


def storage_key_for(job_id: str) -> str:
    return f"movies/{job_id}/movie.mp4"


@lru_cache(maxsize=1)
def _get_s3_client() -> Any:
    return boto3.client(
        "s3",
        region_name="auto",
        endpoint_url=settings.R2_ENDPOINT or None,
        aws_access_key_id=settings.R2_ACCESS_KEY or None,
        aws_secret_access_key=settings.R2_SECRET_KEY or None,
    )


def _is_missing(exc: ClientError) -> bool:
    code = (exc.response.get("Error") or {}).get("Code")
    return code in _MISSING_CODES


def head_object(key: str) -> Optional[ObjectInfo]:
    """Return size and content type, or None when the object does not exist."""
    try:
        resp = _get_s3_client().head_object(Bucket=settings.R2_BUCKET, Key=key)
    except ClientError as exc:
        if _is_missing(exc):
            return None
        raise
    return ObjectInfo(
        key=key,
        size=int(resp.get("ContentLength") or 0),
        content_type=resp.get("ContentType") or DEFAULT_CONTENT_TYPE,
    )


def get_object(key: str, byte_range: Optional[Tuple[int, int]] = None) -> Optional[ObjectBody]:
    """Open the object body, optionally restricted to an inclusive byte span."""
    kwargs = {"Bucket": settings.R2_BUCKET, "Key": key}
    if byte_range is not None:
        kwargs["Range"] = f"bytes={byte_range[0]}-{byte_range[1]}"
    try:
        resp = _get_s3_client().get_object(**kwargs)
    except ClientError as exc:
        if _is_missing(exc):
            return None
        raise
    return ObjectBody(body=resp["Body"])


async def head_object_async(key: str) -> Optional[ObjectInfo]:
    return await asyncio.to_thread(head_object, key)


async def get_object_async(key: str, byte_range: Optional[Tuple[int, int]] = None) -> Optional[ObjectBody]:
    return await asyncio.to_thread(get_object, key, byte_range)
