"""
Domain errors and their HTTP rendering.

Services raise the typed errors below; the handlers registered by
``register_exception_handlers`` log the original error server-side and answer
with ``{"error": <message>}`` where ``message`` is safe to show to clients.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

log = structlog.get_logger()


class ChannelHubError(Exception):
    """Base class for errors raised by Channel Hub services."""

    status_code: int = 500
    message: str = "internal server error"
    # Whether the underlying detail may be returned to the caller
    expose_detail: bool = True

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.message
        super().__init__(self.detail)

    @property
    def public_message(self) -> str:
        return self.detail if self.expose_detail else self.message


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------

class ValidationError(ChannelHubError):
    status_code = 400
    message = "invalid request"


class AlreadyRequestedError(ChannelHubError):
    status_code = 400
    message = "subscription already requested"


class DuplicateSubscriptionError(ChannelHubError):
    status_code = 400
    message = "subscription already added"


class DuplicatePublicKeyError(ChannelHubError):
    status_code = 400
    message = "could not request the subscription"
    expose_detail = False


class DuplicateChannelInfoError(ChannelHubError):
    status_code = 400
    message = "channel info already exists"


class UnauthorizedError(ChannelHubError):
    status_code = 401
    message = "not authorized"


class NotFoundError(ChannelHubError):
    status_code = 404
    message = "not found"


class ConflictError(ChannelHubError):
    """Uniqueness violation reported by a store."""

    status_code = 409
    message = "conflict"
    expose_detail = False


# ---------------------------------------------------------------------------
# Server errors (never expose the underlying detail)
# ---------------------------------------------------------------------------

class SubscriptionRequestError(ChannelHubError):
    status_code = 500
    message = "could not request the subscription"
    expose_detail = False


class LedgerError(ChannelHubError):
    status_code = 500
    expose_detail = False


class StorageError(ChannelHubError):
    status_code = 500
    expose_detail = False


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def channel_hub_error_handler(request: Request, exc: ChannelHubError) -> JSONResponse:
    log_method = log.error if exc.status_code >= 500 or not exc.expose_detail else log.info
    log_method(
        "request.failed",
        error_type=type(exc).__name__,
        detail=exc.detail,
        cause=repr(exc.__cause__) if exc.__cause__ else None,
        method=request.method,
        path=request.url.path,
        status=exc.status_code,
    )
    return error_response(exc.status_code, exc.public_message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    log.info("request.invalid", path=request.url.path, errors=exc.errors())
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid request")
    return error_response(400, f"{location}: {message}" if location else message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChannelHubError, channel_hub_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
