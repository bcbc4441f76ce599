"""Cross-origin policy for the booking API.

Browsers may only call the API from a fixed allow-list of origins. Requests
without an ``Origin`` header (curl, server-to-server) are let through.
Anything else is rejected with 403 before it reaches a route.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

log = logging.getLogger("booking_gateway.cors")

ALLOWED_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]


def is_origin_allowed(origin: str | None, allowed_origins: list[str]) -> bool:
    if not origin:
        return True
    return origin in allowed_origins


def install_cors(app: FastAPI, allowed_origins: list[str]) -> None:
    """Attach CORS headers and the origin guard to ``app``."""
    allowed = list(allowed_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=["*"],
    )

    # Registered after CORSMiddleware so it wraps it and also sees preflights
    @app.middleware("http")
    async def reject_disallowed_origins(request: Request, call_next):
        origin = request.headers.get("origin")
        if not origin:
            log.debug("CORS: request without origin allowed")
            return await call_next(request)
        if not is_origin_allowed(origin, allowed):
            log.warning(
                "CORS blocked: origin %s not allowed. Allowed origins are: %s",
                origin,
                ", ".join(allowed),
            )
            return JSONResponse(
                {"error": f"Origin {origin} not allowed by CORS policy."},
                status_code=403,
            )
        log.debug("CORS: origin allowed: %s", origin)
        return await call_next(request)
