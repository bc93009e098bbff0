"""Exception handlers rendering every failure in the API envelope."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from kasuwa.api.schemas import ApiResponse

logger = structlog.get_logger(__name__)


def _flatten(messages) -> list[str]:
    """``{"field": ["msg", ...]}`` → ``["field: msg", ...]``."""
    if isinstance(messages, dict):
        errors = []
        for field_name, field_messages in messages.items():
            if not isinstance(field_messages, (list, tuple)):
                field_messages = [field_messages]
            for message in field_messages:
                errors.append(str(message) if field_name.startswith("_") else f"{field_name}: {message}")
        return errors
    if isinstance(messages, (list, tuple)):
        return [str(m) for m in messages]
    return [str(messages)]


def _envelope(status_code: int, message: str, errors: list[str]) -> JSONResponse:
    body = ApiResponse(success=False, message=message, data=None, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    errors = _flatten(exc.messages)
    return _envelope(400, errors[0] if len(errors) == 1 else "Validation failed", errors)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())[1:])
        errors.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return _envelope(400, "Validation failed", errors)


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    errors = _flatten(getattr(exc, "messages", None) or str(exc))
    return _envelope(404, errors[0], errors)


async def conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.info("concurrent_modification", path=request.url.path, error=str(exc))
    message = "The resource was modified by another request; please retry"
    return _envelope(409, message, [message])


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = str(exc.detail)
    return _envelope(exc.status_code, detail, [detail])


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    message = "An unexpected error occurred"
    return _envelope(500, message, [message])


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(ExpectedVersionError, conflict_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
