"""FastAPI dependencies and error translation shared by the routers."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from health_analytics.container import ServiceContainer
from health_analytics.exceptions import (
    AlreadyExists,
    Cancelled,
    HealthDataError,
    InvalidInput,
    NotFound,
    StoreUnavailable,
)
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.api.health_response import ErrorResponse

logger = get_logger(__name__)

# Checked in order; first match wins
STATUS_BY_ERROR: tuple[tuple[type[HealthDataError], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (AlreadyExists, status.HTTP_409_CONFLICT),
    (Cancelled, status.HTTP_504_GATEWAY_TIMEOUT),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container not initialized")
    return container


def status_for(error: HealthDataError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def health_data_error_handler(request: Request, exc: HealthDataError) -> JSONResponse:
    status_code = status_for(exc)

    if status_code >= 500:
        logger.error(
            "Request failed",
            path=request.url.path,
            status_code=status_code,
            error=str(exc),
            error_type=type(exc).__name__,
        )
    else:
        logger.info("Request rejected", path=request.url.path, status_code=status_code, error=str(exc))

    body = ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())
