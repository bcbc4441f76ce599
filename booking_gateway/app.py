"""FastAPI application: HTTP endpoints for the booking gateway.

Endpoints:

  GET  /                         Liveness message
  GET  /health                   Health check (uptime, calendar readiness)
  POST /api/check-availability   Is the 30-minute slot starting at startDateTimeISO free?
  POST /api/create-booking       Create the event on the calendar

The calendar client is created once in the lifespan handler and stored on
``app.state.gateway``. Both ``/api`` routes answer 503 while it is not ready.
"""

from __future__ import annotations

# Load .env into os.environ before settings are read.
from dotenv import load_dotenv
load_dotenv()

import asyncio
import copy
import json
import logging
import sys
import threading
import time
from contextlib import asynccontextmanager
from typing import Any, Optional
from urllib.parse import parse_qsl

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

import pydantic
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from booking_gateway import __version__
from booking_gateway.config import Settings, settings
from booking_gateway.cors import install_cors
from booking_gateway.errors import (
    BookingError,
    BookingValidationError,
    PayloadTooLargeError,
    ServiceUnavailableError,
)
from booking_gateway.gateway import BookingGateway, initialize_gateway
from booking_gateway.models.booking import (
    AvailabilityRequest,
    AvailabilityResponse,
    BookingRequest,
    ErrorResponse,
)

log = logging.getLogger("booking_gateway.app")

_START_TIME = time.time()


def _log_unhandled_async_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Event loop exception handler: log, never terminate."""
    log.error(
        "Unhandled async error: %s",
        context.get("message", "unknown"),
        exc_info=context.get("exception"),
    )


def require_gateway(request: Request) -> BookingGateway:
    """FastAPI dependency: reject with 503 unless the calendar client is ready."""
    gateway: Optional[BookingGateway] = getattr(request.app.state, "gateway", None)
    if gateway is None or not gateway.is_ready:
        log.error(
            "Calendar client not initialized. Request blocked for %s %s",
            request.method,
            request.url.path,
        )
        raise ServiceUnavailableError()
    return gateway


async def _read_payload(request: Request, max_bytes: int) -> dict[str, Any]:
    """Read a JSON or urlencoded body. Unparseable bodies count as empty."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        log.error("Rejecting request. Payload too large: %s", content_length)
        raise PayloadTooLargeError()

    raw = await request.body()
    if len(raw) > max_bytes:
        log.error("Rejecting request. Payload too large: %d", len(raw))
        raise PayloadTooLargeError()
    if not raw:
        return {}

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True))

    try:
        payload = json.loads(raw)
    except ValueError:
        log.warning("Ignoring unparseable request body on %s", request.url.path)
        return {}
    return payload if isinstance(payload, dict) else {}


def _parse(model: type[pydantic.BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        log.error("Invalid request body: %s", exc.errors(include_url=False))
        raise BookingValidationError("Invalid request body.") from exc


def create_app(
    app_settings: Optional[Settings] = None,
    gateway: Optional[BookingGateway] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use. Defaults to the module-level settings.
        gateway: Pre-built gateway. When omitted, one is initialized from
                 the settings at startup.
    """
    cfg = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_log_unhandled_async_error)

        for warning in cfg.validate_startup():
            log.warning(warning)

        if getattr(app.state, "gateway", None) is None:
            app.state.gateway = initialize_gateway(cfg)

        if app.state.gateway.is_ready:
            log.info("Google Calendar client is ready.")
        else:
            log.warning(
                "Google Calendar client could not be initialized. "
                "Calendar operations will fail."
            )
        log.info("Booking backend started on port %d", cfg.port)
        log.info("CORS configured to allow: %s", ", ".join(cfg.allowed_origins))
        yield
        log.info("Server stopped cleanly.")

    app = FastAPI(
        title="Booking Gateway",
        description="Availability checks and bookings proxied to Google Calendar",
        version=__version__,
        lifespan=lifespan,
    )
    if gateway is not None:
        app.state.gateway = gateway

    install_cors(app, cfg.allowed_origins)

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        return JSONResponse(
            ErrorResponse(error=exc.message).model_dump(), status_code=exc.status_code
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            ErrorResponse(error="Internal server error.").model_dump(), status_code=500
        )

    # ── Health ──────────────────────────────────────────────────

    @app.get("/")
    async def root() -> JSONResponse:
        return JSONResponse({"message": "Booking backend server is running!"})

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Lightweight health check, confirms the event loop is responsive."""
        gw = getattr(request.app.state, "gateway", None)
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({
            "status": "ok",
            "uptime": uptime,
            "calendarReady": bool(gw and gw.is_ready),
        })

    # ── Booking API ─────────────────────────────────────────────

    @app.post("/api/check-availability")
    async def check_availability(
        request: Request,
        gw: BookingGateway = Depends(require_gateway),
    ) -> JSONResponse:
        payload = await _read_payload(request, cfg.max_body_bytes)
        body = _parse(AvailabilityRequest, payload)
        available = await gw.check_availability(body)
        return JSONResponse(AvailabilityResponse(available=available).model_dump())

    @app.post("/api/create-booking")
    async def create_booking(
        request: Request,
        gw: BookingGateway = Depends(require_gateway),
    ) -> JSONResponse:
        payload = await _read_payload(request, cfg.max_body_bytes)
        body = _parse(BookingRequest, payload)
        result = await gw.create_booking(body)
        return JSONResponse(result.model_dump(by_alias=True))

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


def run() -> int:
    """Serve the module-level app until interrupted. Returns the exit code."""
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    log_config = copy.deepcopy(uvicorn.config.LOGGING_CONFIG)
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-20s %(levelname)-7s %(message)s"
    )

    if settings.debug:
        # Reload needs an import string; the reloader supervises a child process.
        uvicorn.run(
            "booking_gateway.app:app",
            host=settings.host,
            port=settings.port,
            reload=True,
            log_config=log_config,
        )
        return 0

    # uvicorn handles SIGINT/SIGTERM: stop accepting, drain, exit 0
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=log_config,
        )
    )
    exit_code = 0

    def fatal_error(exc_type, exc_value, exc_traceback) -> None:
        nonlocal exit_code
        log.critical(
            "Uncaught fatal error, shutting down",
            exc_info=(exc_type, exc_value, exc_traceback),
        )
        exit_code = 1
        server.should_exit = True

    def thread_fatal_error(args: threading.ExceptHookArgs) -> None:
        if issubclass(args.exc_type, SystemExit):
            return
        fatal_error(args.exc_type, args.exc_value, args.exc_traceback)

    previous_hooks = (sys.excepthook, threading.excepthook)
    sys.excepthook = fatal_error
    threading.excepthook = thread_fatal_error
    try:
        server.run()
    except Exception:
        log.critical("Uncaught fatal error, server loop aborted", exc_info=True)
        return 1
    finally:
        sys.excepthook, threading.excepthook = previous_hooks
    return exit_code


if __name__ == "__main__":
    sys.exit(run())
