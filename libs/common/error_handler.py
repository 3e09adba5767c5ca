from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from libs.common.errors import InvalidArgument, ServiceError
from libs.common.logging import get_logger

logger = get_logger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as ``{"detail": reason, "code": kind}``."""
    logger.info(
        f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def describe_validation_error(exc: RequestValidationError) -> str:
    """First validation failure as ``field: message``."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the "body"/"query" prefix so the field name reads as sent
    location = [str(part) for part in first.get("loc", ())[1:]]
    message = first.get("msg", "Invalid value")
    return f"{'.'.join(location)}: {message}" if location else message


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request validation failures use the same shape as InvalidArgument."""
    return await service_error_handler(
        request, InvalidArgument(describe_validation_error(exc))
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the shared exception handlers on an app."""
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
