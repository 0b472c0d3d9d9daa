"""
Movies on Demand - FastAPI Backend
Acquires titles from Usenet on request and serves the finished files as seekable streams.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    discovery,
    releases,
    jobs,
    internal,
    streaming,
    history,
)
from services.acquisition_queue import recover_stalled_acquisition_jobs
from services.errors import (
    AcquisitionError,
    acquisition_error_handler,
    request_validation_error_handler,
    unhandled_error_handler,
)


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    for name in ("httpx", "httpcore", "botocore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    print("🚀 Starting Movies on Demand API...")
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    try:
        recovered = await recover_stalled_acquisition_jobs(int(settings.STALLED_JOB_MAX_AGE_MINUTES))
        if recovered:
            print(f"♻️ Marked {recovered} stalled acquisition jobs as error after startup.")
    except Exception as exc:
        print(f"⚠️ Stalled acquisition recovery skipped: {exc}")
    yield
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Movies on Demand API",
    description="Usenet acquisition pipeline with range-capable streaming",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
)

app.add_exception_handler(AcquisitionError, acquisition_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(health.router, tags=["Health"])
app.include_router(discovery.router, tags=["Discovery"])
app.include_router(releases.router, tags=["Releases"])
app.include_router(jobs.router, tags=["Jobs"])
app.include_router(streaming.router, tags=["Streaming"])
app.include_router(history.router, tags=["History"])
app.include_router(internal.router, prefix="/internal", tags=["Internal"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Movies on Demand API",
        "version": "0.1.0",
        "status": "running"
    }
