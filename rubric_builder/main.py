from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from rubric_builder.config import AppConfig, DEFAULT_API_PREFIX, load_config
from rubric_builder.db.base import get_engine
from rubric_builder.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from rubric_builder.logging_setup import configure_logging
from rubric_builder.logic.repository_rubrics import ensure_schema
from rubric_builder.routes import api_router

logger = logging.getLogger(__name__)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the rubric service application.

    The rubric table is created up front so the app also works under
    transports that never run lifespan events (such as httpx.ASGITransport).
    """
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Peer Review Rubric Service")
    app.state.config = cfg
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    ensure_schema(get_engine(cfg.database.dsn))
    app.include_router(api_router, prefix=DEFAULT_API_PREFIX)

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok"}

    logger.info("app.created org_id=%s prefix=%s", cfg.organization.org_id, DEFAULT_API_PREFIX)
    return app


__all__ = ["create_app"]
