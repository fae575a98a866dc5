# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Domain error taxonomy and the FastAPI handlers that render it.

Services raise these exceptions; they never build HTTP responses
themselves.  ``register_error_handlers`` turns every failure into the same
envelope::

    {"success": false, "error": "<code>", "message": "<text>"}

Only unexpected failures are logged with detail.  Their message to the
caller is always the generic ``Internal server error``.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logger import logger


class GatepassError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(GatepassError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class AuthenticationError(GatepassError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"


class AuthorizationError(GatepassError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "authorization_error"


class NotFoundError(GatepassError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class StateError(GatepassError):
    """Operation is not legal in the entity's current lifecycle state."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class ConflictError(GatepassError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class UnexpectedError(GatepassError):
    code = "unexpected_error"


_GENERIC_MESSAGE = "Internal server error"

# Starlette raises plain HTTPExceptions for routing failures (404 on an
# unknown path, 405 on a wrong method).  Map them onto our codes.
_HTTP_CODES = {
    status.HTTP_400_BAD_REQUEST: ValidationError.code,
    status.HTTP_401_UNAUTHORIZED: AuthenticationError.code,
    status.HTTP_403_FORBIDDEN: AuthorizationError.code,
    status.HTTP_404_NOT_FOUND: NotFoundError.code,
}


def _envelope(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": code, "message": message},
    )


def _format_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatepassError)
    async def _domain_error(request: Request, exc: GatepassError):
        if isinstance(exc, UnexpectedError):
            logger.error("%s %s | unexpected: %s", request.method, request.url.path, exc.message)
            return _envelope(exc.status_code, exc.code, _GENERIC_MESSAGE)
        return _envelope(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return _envelope(
            status.HTTP_400_BAD_REQUEST,
            ValidationError.code,
            _format_validation(exc),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        code = _HTTP_CODES.get(exc.status_code, "http_error")
        return _envelope(exc.status_code, code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError):
        logger.exception("%s %s | store failure", request.method, request.url.path)
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            UnexpectedError.code,
            _GENERIC_MESSAGE,
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("%s %s | unhandled error", request.method, request.url.path)
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            UnexpectedError.code,
            _GENERIC_MESSAGE,
        )
