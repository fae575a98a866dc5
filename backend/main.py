# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

``create_app`` wires the service together:

* CORS and the access-log middleware.
* The error handlers that render the failure envelope.
* The auth, visits, passes and admin routers.
* A lifespan that disposes of the connection pool on shutdown.
* ``/health`` for container liveness checks.

Run with::

    cd backend && uvicorn main:app

Production note
---------------
CORS allow_origins is set to localhost only.  In a production deployment
this must be changed to the exact frontend origin.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from admin.router import router as admin_router
from auth.router import router as auth_router
from core.errors import register_error_handlers
from core.logger import logger
from database import dispose_engine
from passes.router import router as passes_router
from visits.router import router as visits_router

_ALLOWED_ORIGINS = ["http://localhost:8000"]
# Liveness checks hit this every few seconds; keep them out of the log
_QUIET_PATHS = {"/health"}


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One INFO line per request.  Bodies (passwords, pass codes) are never logged."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response: Response = await call_next(request)
        if request.url.path in _QUIET_PATHS:
            return response

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            request.client.host if request.client else "unknown",
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


@asynccontextmanager
async def _lifespan(app: FastAPI):
    logger.info("Gatepass service starting up")
    yield
    dispose_engine()
    logger.info("Gatepass service shutting down")


def create_app() -> FastAPI:
    app = FastAPI(title="Gatepass Visitor Management", version="1.0.0", lifespan=_lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_ALLOWED_ORIGINS,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(AccessLogMiddleware)
    register_error_handlers(app)

    for router in (auth_router, visits_router, passes_router, admin_router):
        app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
