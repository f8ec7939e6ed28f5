"""Domain error taxonomy and the FastAPI handlers that render it.

Services raise these; routers let them propagate. Every error leaves the API
as ``{"error": "<message>"}`` with the status code carried by the class.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MakaoError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MakaoError):
    """A required field is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(MakaoError):
    """A referenced entity does not exist (or is not visible to the caller)."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(MakaoError):
    """An invariant would be violated, e.g. double allocation of a unit."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InvalidStateError(MakaoError):
    """The operation is not valid for the entity's current status."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in current state"


class PermissionDeniedError(MakaoError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class UpstreamError(MakaoError):
    """Identity provider, notification channel or store failure."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service unavailable"


async def makao_error_handler(request: Request, exc: MakaoError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.default_message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "loc": list(err.get("loc", ())),
            "msg": str(err.get("msg")),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "details": details},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to the application."""
    app.add_exception_handler(MakaoError, makao_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
