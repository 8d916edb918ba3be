"""Exception handlers with request_id in responses."""

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.blueprint.core.logging import get_logger
from src.blueprint.services.errors import (
    AdmissionDenied,
    InvalidTransition,
    PipelineError,
    PreconditionFailed,
    ProjectNotFound,
    ScreenNotFound,
)

logger = get_logger(__name__)

# Trigger-time pipeline errors and the status each maps to
PIPELINE_ERROR_STATUS: dict[type[PipelineError], int] = {
    AdmissionDenied: status.HTTP_429_TOO_MANY_REQUESTS,
    InvalidTransition: status.HTTP_409_CONFLICT,
    ProjectNotFound: status.HTTP_404_NOT_FOUND,
    ScreenNotFound: status.HTTP_404_NOT_FOUND,
    PreconditionFailed: status.HTTP_409_CONFLICT,
}


def _status_for(exc: PipelineError) -> int:
    for error_type, status_code in PIPELINE_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(PipelineError)
    async def pipeline_exception_handler(request: Request, exc: PipelineError) -> JSONResponse:
        status_code = _status_for(exc)
        request_id = correlation_id.get()
        if status_code >= 500:
            logger.exception(
                "Pipeline error",
                exc_info=exc,
                request_id=request_id,
                path=request.url.path,
            )
            detail = "Internal server error"
        else:
            logger.info(
                "Request rejected",
                error=type(exc).__name__,
                status_code=status_code,
                path=request.url.path,
            )
            detail = str(exc)
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": detail,
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
