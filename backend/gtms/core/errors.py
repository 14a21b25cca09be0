"""
Centralized error handling for API and storage failures.
Constants, a small exception hierarchy and rule tables so routes stay thin and new error
types are easy to add. Every error leaves the API as JSON {"message", "code"}.
"""
from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, ProgrammingError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants: status codes and machine-readable codes
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500
STATUS_NOT_IMPLEMENTED = 501  # feature table not provisioned yet

CODE_VALIDATION_ERROR = "VALIDATION_ERROR"
CODE_FEATURE_NOT_AVAILABLE = "FEATURE_NOT_AVAILABLE"
CODE_INTERNAL_ERROR = "INTERNAL_ERROR"
CODE_NOT_FOUND = "NOT_FOUND"

MSG_INTERNAL_ERROR = "Internal server error"


class ApiError(Exception):
    """Raised by routes and dependencies; rendered as {"message", "code"} with status_code."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class FeatureUnavailable(ApiError):
    def __init__(self, feature: str):
        super().__init__(
            STATUS_NOT_IMPLEMENTED,
            CODE_FEATURE_NOT_AVAILABLE,
            f"{feature} is not available yet",
        )


# ---------------------------------------------------------------------------
# Missing-schema rules: (predicate on lowercased message). First match wins.
# Covers SQLite, PostgreSQL and MySQL wordings for a missing table or column.
# ---------------------------------------------------------------------------

def _is_missing_table(msg: str) -> bool:
    return (
        "no such table" in msg
        or ("relation" in msg and "does not exist" in msg)
        or ("table" in msg and "doesn't exist" in msg)
    )


def _is_missing_column(msg: str) -> bool:
    return (
        "no such column" in msg
        or "has no column named" in msg
        or "unknown column" in msg
        or ("column" in msg and "does not exist" in msg)
    )


MISSING_SCHEMA_RULES: list[Callable[[str], bool]] = [_is_missing_table, _is_missing_column]


def is_missing_schema_error(exc: BaseException) -> bool:
    """True when a storage error means the table/column is not provisioned (rollout in progress)."""
    if not isinstance(exc, (OperationalError, ProgrammingError)):
        return False
    msg = str(getattr(exc, "orig", None) or exc).lower()
    return any(rule(msg) for rule in MISSING_SCHEMA_RULES)


def error_body(code: str, message: str) -> dict[str, str]:
    return {"message": message, "code": code}


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid or missing field: {field}" if field else "Invalid request"
    return JSONResponse(status_code=STATUS_BAD_REQUEST, content=error_body(CODE_VALIDATION_ERROR, message))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=STATUS_INTERNAL_ERROR, content=error_body(CODE_INTERNAL_ERROR, MSG_INTERNAL_ERROR))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
