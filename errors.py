import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from messages import DEFAULT_LOCALE, locale_for, translate_for

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Failure with a user-facing message key and an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message_key: str, status_code: int | None = None):
        super().__init__(message_key)
        self.message_key = message_key
        if status_code is not None:
            self.status_code = status_code


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _error_response(exc.status_code, translate_for(request, exc.message_key), headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # Unknown routes, wrong methods and anything Starlette raises itself.
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = translate_for(request, "not_found")
    else:
        message = str(exc.detail)
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = translate_for(request, "validation_error")
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        # pydantic's wording is English only; other locales get the field name.
        detail = first.get("msg", "") if locale_for(request) == DEFAULT_LOCALE else ""
        parts = " ".join(part for part in (field, detail) if part)
        if parts:
            message = f"{message}: {parts}"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        translate_for(request, "internal_error"),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
