"""Global exception handlers.

All errors leave the API as ``{"message": ..., "code": ...}``. Unhandled
exceptions are logged with their traceback and answered with a generic 500.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import CrewError, ErrorKind
from .logging_config import get_logger

logger = get_logger(__name__)

_STATUS_KINDS = {
    400: ErrorKind.VALIDATION_ERROR,
    401: ErrorKind.NOT_AUTHENTICATED,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
}


def error_body(message: str, kind: ErrorKind) -> dict:
    return {"message": message, "code": kind.value}


async def crew_error_handler(request: Request, exc: CrewError) -> JSONResponse:
    logger.warning(
        "request_failed",
        path=request.url.path,
        status=exc.status_code,
        code=exc.kind.value,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Validation failed"
    if errors:
        first = errors[0]
        field = ".".join(str(x) for x in first.get("loc", []) if x != "body")
        message = f"{field}: {first.get('msg', 'Invalid value')}" if field else first.get("msg", message)
    logger.info("request_invalid", path=request.url.path, errors=len(errors))
    return JSONResponse(status_code=400, content=error_body(message, ErrorKind.VALIDATION_ERROR))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = _STATUS_KINDS.get(exc.status_code, ErrorKind.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, kind),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error", ErrorKind.INTERNAL_ERROR))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CrewError, crew_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
