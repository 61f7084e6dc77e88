"""
Error taxonomy and the handlers that turn it into API envelopes.

Every service raises one of the AppError subclasses below. A single
handler renders them as {success: false, message, ...flags}, so routes
never build error responses by hand.

    ValidationError     400  missing/malformed fields, illegal transition
    Unauthenticated     401  missing/invalid/expired token
    Forbidden           403  wrong role, not the owner, blocked account
    NotFound            404  resource absent
    Conflict            409  duplicate application / email
    PreconditionFailed  422  e.g. no CV before applying
    Transient           500  connection or timeout trouble, safe to retry
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from espacestage.core.config import get_settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **flags: Any):
        self.message = message or self.default_message
        self.flags = flags
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload = {"success": False, "message": self.message}
        payload.update(self.flags)
        return payload


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidCredentials(Unauthenticated):
    default_message = "Invalid email or password"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class AccountBlocked(Forbidden):
    default_message = "Your account has been blocked by an administrator"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class PreconditionFailed(AppError):
    status_code = 422
    default_message = "Precondition failed"


class Transient(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Temporary server error, please retry"


def _detail(request: Request, exc: Exception) -> Dict[str, Any]:
    """Internal error detail, only exposed in development."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    if settings.is_development:
        return {"error": str(exc)}
    return {}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    first = errors[0] if errors else {"field": "", "message": "Invalid request"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message, "errors": errors},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    if isinstance(exc, IntegrityError):
        err = Conflict("Conflicting data", **_detail(request, exc))
    elif isinstance(exc, (DBAPIError, PoolTimeoutError)):
        logger.warning("Database unavailable during %s %s: %s", request.method, request.url.path, exc)
        err = Transient(**_detail(request, exc))
    else:
        logger.exception("Database error during %s %s", request.method, request.url.path)
        err = Transient(**_detail(request, exc))
    return JSONResponse(status_code=err.status_code, content=err.to_payload())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Internal server error"}
    content.update(_detail(request, exc))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors raised by Starlette (unknown route, method not allowed)."""
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
