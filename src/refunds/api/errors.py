"""Map domain and framework errors onto ``{"error": {"code", "message"}}``."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException

from refunds.errors import InternalError, NotFound, RefundsError, Unavailable
from refunds.utils.logging import logger

_HTTP_CODES = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND"}


def _error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    body = {"error": {"code": code, "message": message, **extra}}
    return JSONResponse(status_code=status_code, content=body)


def _validation_message(messages) -> str:
    if isinstance(messages, dict):
        parts = []
        for field, errors in messages.items():
            errors = errors if isinstance(errors, list) else [errors]
            parts.append(f"{field}: {'; '.join(str(e) for e in errors)}")
        return ", ".join(parts)
    return str(messages)


async def refunds_error_handler(request: Request, exc: RefundsError) -> JSONResponse:
    logger.info(
        "Request rejected",
        path=request.url.path,
        code=exc.code,
        error_message=exc.message,
    )
    extra = {"skipped": exc.context["skipped"]} if "skipped" in exc.context else {}
    return _error_response(exc.status_code, exc.code, exc.message, **extra)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(
        400,
        "VALIDATION_ERROR",
        _validation_message(exc.messages),
        fields=exc.messages if isinstance(exc.messages, dict) else None,
    )


async def object_not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _error_response(NotFound.status_code, NotFound.code, "Resource not found")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    return _error_response(exc.status_code, code, str(exc.detail))


async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("Request timed out", path=request.url.path, method=request.method)
    error = Unavailable("Service temporarily unavailable, please retry")
    return _error_response(error.status_code, error.code, error.message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    error = InternalError()
    return _error_response(error.status_code, error.code, error.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RefundsError, refunds_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, object_not_found_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(TimeoutError, timeout_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
