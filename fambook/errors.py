import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from fambook.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# TAXONOMY
# ============================================================

class FambookError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        errors: Any = None,
        error: Optional[str] = None,
        data: Any = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        self.error = error
        self.data = data
        super().__init__(self.message)


class ValidationError(FambookError):
    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(FambookError):
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(FambookError):
    status_code = 403
    default_message = "Access denied"


class NotFoundError(FambookError):
    status_code = 404
    default_message = "Not found"


class ConflictError(FambookError):
    status_code = 409
    default_message = "Conflict"


class DependencyError(FambookError):
    """An external collaborator (media storage) failed."""

    status_code = 500
    default_message = "External service failed"


class InternalError(FambookError):
    status_code = 500
    default_message = "Internal server error"


# ============================================================
# ENVELOPE
# ============================================================

def error_envelope(
    message: str,
    *,
    errors: Any = None,
    error: Optional[str] = None,
    data: Any = None,
) -> dict:
    body = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    if error is not None:
        body["error"] = error
    if data is not None:
        body["data"] = data
    return body


def format_validation_errors(raw_errors) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in raw_errors
    ]


def _respond(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# ============================================================
# HANDLERS
# ============================================================

async def fambook_error_handler(request: Request, exc: FambookError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error)

    error = exc.error
    if exc.status_code >= 500 and not settings.DEBUG_ERRORS:
        error = None

    return _respond(
        exc.status_code,
        error_envelope(exc.message, errors=exc.errors, error=error, data=exc.data),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _respond(400, error_envelope("Invalid input", errors=format_validation_errors(exc.errors())))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message),
        headers=getattr(exc, "headers", None),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc.orig)
    return _respond(409, error_envelope("This record conflicts with an existing one"))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = str(exc) if settings.DEBUG_ERRORS else None
    return _respond(500, error_envelope(InternalError.default_message, error=error))


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(FambookError, fambook_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
