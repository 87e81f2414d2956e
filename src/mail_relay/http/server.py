"""FastAPI application and uvicorn server for Mail Relay."""

import time
import uuid
from typing import Any, Awaitable, Callable, Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from mail_relay import __version__
from mail_relay.config import AppConfig
from mail_relay.errors import RelayError
from mail_relay.http.email import router as email_router
from mail_relay.http.health import router as health_router
from mail_relay.mail.dispatcher import MailDispatcher
from mail_relay.metrics import requests_total


logger = structlog.get_logger()


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render a RelayError as ``{"success": false, "error": ...}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected exceptions as a generic 500."""
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


async def log_requests(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a request id to the log context and log each request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=uuid.uuid4().hex,
        client_ip=request.headers.get("x-forwarded-for")
        or (request.client.host if request.client else "unknown"),
    )

    start = time.monotonic()
    try:
        response = await call_next(request)
    except Exception:
        # Rendered as 500 by unhandled_error_handler, outside this middleware
        requests_total.labels(status="500").inc()
        logger.error(
            "HTTP request failed",
            method=request.method,
            path=request.url.path,
            status_code=500,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        raise
    duration_ms = round((time.monotonic() - start) * 1000, 2)

    requests_total.labels(status=str(response.status_code)).inc()
    logger.info(
        "HTTP request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=duration_ms,
    )
    return response


def create_app(
    config: AppConfig,
    dispatcher: Optional[MailDispatcher] = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        config: Loaded application configuration, shared read-only by all requests
        dispatcher: Mail dispatcher; defaults to one built from ``config.email``

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Mail Relay",
        description="Forwards authenticated HTTP requests as email via an SMTP relay",
        version=__version__,
    )

    app.state.config = config
    app.state.dispatcher = dispatcher or MailDispatcher(config.email)

    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.middleware("http")(log_requests)

    app.include_router(email_router, tags=["email"])
    app.include_router(health_router, prefix="/health", tags=["health"])

    # Metrics endpoint
    @app.get("/metrics", tags=["metrics"])
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


def create_http_server(config: AppConfig, app: Optional[FastAPI] = None) -> Any:
    """Create the uvicorn server for the relay.

    Args:
        config: Application configuration providing the bind address
        app: Application to serve; built from ``config`` if omitted

    Returns:
        HTTP server instance (uvicorn Server), not yet serving
    """
    import uvicorn

    logger.info(
        "Creating HTTP server",
        host=config.server.server_host,
        port=config.server.server_port,
    )

    uvicorn_config = uvicorn.Config(
        app or create_app(config),
        host=config.server.server_host,
        port=config.server.server_port,
        log_level="warning",  # Reduce noise, we have our own logging
        access_log=False,
    )

    return uvicorn.Server(uvicorn_config)
