from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import RequestResponseEndpoint

from src.blueprint.api.v1.router import api_router, ws_router
from src.blueprint.core.config import get_settings
from src.blueprint.core.db import dispose_engine
from src.blueprint.core.exceptions import setup_exception_handlers
from src.blueprint.core.health import setup_health_endpoint, setup_metrics
from src.blueprint.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from src.blueprint.core.redis import close_redis
from src.blueprint.core.tasks import task_runner

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info("Starting application", app_name=settings.app_name, env=settings.app_env)

    yield

    # Let running pipelines reach a terminal status before connections go away
    grace_period = settings.shutdown_grace_period
    logger.info("Shutdown initiated", pipeline_runs=task_runner.in_flight_count)
    drained = await task_runner.wait_for_drain(timeout=grace_period)
    if not drained:
        logger.warning(
            "Shutdown timeout, pipeline runs may be left in a busy status",
            grace_period=grace_period,
            pipeline_runs=task_runner.in_flight_count,
        )

    logger.info("Closing connections...")
    await close_redis()
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "projects", "description": "Idea submission, generation pipeline and screens"},
    {"name": "events", "description": "Live pipeline progress over WebSocket"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Turns product ideas into features, screens and wireframes",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    # Add correlation ID middleware first (outermost middleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def logging_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Bind request_id to log context for all requests."""
        clear_request_context()
        bind_request_context(correlation_id.get())
        try:
            response = await call_next(request)
            return response
        finally:
            clear_request_context()

    app.include_router(api_router)
    app.include_router(ws_router)

    setup_metrics(app)
    setup_health_endpoint(app)

    return app


app = create_app()
