"""RFC 7807 Problem Details exception handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException

from otplink.core.exceptions import ErrorKind, OTPLinkError, RecordNotFoundError

_ERROR_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    422: "Validation Error",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

_KIND_STATUS = {
    ErrorKind.INVALID_CONFIG: 400,
    ErrorKind.DELIVERY_FAILED: 502,
    ErrorKind.STORAGE_FAILED: 500,
}


def _problem(request: Request, status_code: int, detail: str, **extra) -> JSONResponse:
    content = {
        "type": f"urn:otplink:error:http-{status_code}",
        "title": _ERROR_TITLES.get(status_code, "Error"),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
        **extra,
    }
    return JSONResponse(
        status_code=status_code, content=content, media_type="application/problem+json"
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _problem(request, exc.status_code, detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors[field] = error["msg"]
    return _problem(request, 422, "Request validation failed", errors=errors)


async def otplink_exception_handler(request: Request, exc: OTPLinkError) -> JSONResponse:
    """Map domain errors to HTTP status codes."""
    if isinstance(exc, RecordNotFoundError):
        status_code = 404
    else:
        status_code = _KIND_STATUS.get(exc.kind, 500)

    if status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.message}")
    return _problem(request, status_code, exc.message, error=exc.to_dict())
