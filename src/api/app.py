# src/api/app.py - v1
"""FastAPI application factory.

Adds request-id propagation, an access log line per request, and maps every
error onto the ErrorResponse body.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cepgateway.api.models import ErrorResponse
from cepgateway.api.routes import cep_router, health_router
from cepgateway.cep.orchestrator import CepService, build_service
from cepgateway.config.settings import Settings, load_settings
from cepgateway.core.errors import CepLookupError, ErrorCode
from cepgateway.logging.context import clear_context, set_request_context
from cepgateway.version import __version__

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    code: ErrorCode,
    message: str,
    details: dict | None,
) -> JSONResponse:
    body = ErrorResponse(
        code=code,
        message=message,
        details=details,
        request_id=getattr(request.state, "request_id", ""),
        timestamp=datetime.now(timezone.utc),
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    settings: Settings | None = None,
    service: CepService | None = None,
) -> FastAPI:
    """Build the HTTP application.

    Args:
        settings: Application settings. Loaded from .env if None.
        service: Lookup service. Built from settings if None.

    Returns:
        Configured FastAPI app. The service is closed on shutdown.
    """
    settings = settings or load_settings()
    service = service or build_service(settings)
    header = settings.request_id_header

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.service.aclose()

    app = FastAPI(
        title="CEP Gateway",
        description="Brazilian postal code lookup with weighted provider fallback",
        version=__version__,
        docs_url=settings.docs_path if settings.enable_docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.enable_docs else None,
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.settings = settings

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(header) or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id)
        started = time.monotonic()
        logger.info("--> %s %s", request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = _error_response(
                request,
                500,
                ErrorCode.UPSTREAM_UNAVAILABLE,
                "Internal server error",
                None,
            )

        response.headers[header] = request_id
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "<-- %s %s %d %dms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        clear_context()
        return response

    @app.exception_handler(CepLookupError)
    async def handle_lookup_error(request: Request, exc: CepLookupError) -> JSONResponse:
        failure = exc.failure
        return _error_response(
            request, failure.http_status, failure.code, failure.message, failure.details,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # Framework errors (unknown route, wrong method) keep their status.
        response = _error_response(
            request,
            exc.status_code,
            ErrorCode.UPSTREAM_UNAVAILABLE,
            str(exc.detail),
            None,
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    app.include_router(cep_router)
    app.include_router(health_router, prefix=settings.health_path)
    return app
