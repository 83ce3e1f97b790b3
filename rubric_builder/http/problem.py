"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses, plus the ``{err, errMsg}`` envelope the
rubric endpoints use for domain failures.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from rubric_builder.http.error_mapping import ERROR_MAP

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def error_response(key: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """Build the ``{err: true, errMsg}`` envelope for an ERROR_MAP entry."""
    entry = ERROR_MAP[key]
    body: Dict[str, Any] = {"err": True, "errMsg": entry["message"]}
    if "code" in entry:
        body["code"] = entry["code"]
    logger.info("error_handler.handle key=%s status=%s", key, entry["status"])
    return JSONResponse(body, status_code=int(entry["status"]), headers=headers)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"title": "Error", "status": int(exc.status_code), "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        detail,
        status_code=int(exc.status_code),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ],
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return error_response("internal")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "error_response",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
