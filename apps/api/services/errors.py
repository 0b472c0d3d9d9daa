"""Structured error helpers for API responses."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


INVALID_INPUT = "INVALID_INPUT"
NOT_FOUND = "NOT_FOUND"
INTERNAL_ERROR = "INTERNAL_ERROR"
STORAGE_ERROR = "STORAGE_ERROR"
UNAUTHORIZED = "UNAUTHORIZED"


def build_error_payload(code: str, message: str) -> dict:
    return {"error": message, "code": code}


class AcquisitionError(Exception):
    """Application-scoped error carrying an HTTP status and a stable machine-readable code."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    @property
    def payload(self) -> dict:
        return build_error_payload(self.code, self.message)


def invalid_input(message: str) -> AcquisitionError:
    return AcquisitionError(400, INVALID_INPUT, message)


def not_found(message: str) -> AcquisitionError:
    return AcquisitionError(404, NOT_FOUND, message)


def internal_error(message: str) -> AcquisitionError:
    return AcquisitionError(500, INTERNAL_ERROR, message)


def upstream_error(message: str) -> AcquisitionError:
    """Collaborator (catalog or release index) failure; reported, never retried here."""
    return AcquisitionError(502, INTERNAL_ERROR, message)


def storage_error(message: str) -> AcquisitionError:
    return AcquisitionError(502, STORAGE_ERROR, message)


def unauthorized(message: str) -> AcquisitionError:
    return AcquisitionError(401, UNAUTHORIZED, message)


async def acquisition_error_handler(_: Request, exc: AcquisitionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=build_error_payload(INVALID_INPUT, message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=build_error_payload(INTERNAL_ERROR, "Internal server error"),
    )
