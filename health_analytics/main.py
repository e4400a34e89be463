"""
Query facade: HTTP access to the health record repositories and summaries.

The application lifespan owns the Mongo and Redis clients and builds the
service container the routes depend on.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from health_analytics.config import settings
from health_analytics.container import build_container
from health_analytics.db.mongo import MongoClientManager
from health_analytics.exceptions import HealthDataError
from health_analytics.infrastructure.observability.logging import get_logger, log_request, setup_logging
from health_analytics.middleware import RequestContextMiddleware
from health_analytics.routes import health, records, summary
from health_analytics.routes.dependencies import health_data_error_handler
from health_analytics.services.infrastructure.redis_client import RedisClient

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    mongo = MongoClientManager(settings)
    redis_client = RedisClient(settings.REDIS_URL)
    startup_tasks = []

    try:
        logger.info("Initializing Mongo client")
        await mongo.initialize()
        startup_tasks.append("mongodb")

        logger.info("Initializing Redis connection")
        await redis_client.initialize()
        startup_tasks.append("redis")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        # Clean up any successfully initialized services in reverse order
        if "redis" in startup_tasks:
            await redis_client.close()
        if "mongodb" in startup_tasks:
            await mongo.close()

        raise

    app.state.container = build_container(
        settings, mongo.database, mongo=mongo, redis=redis_client
    )

    yield

    # Shutdown sequence (reverse order)
    logger.info("Application shutting down")
    await redis_client.close()
    await mongo.close()
    logger.info("All services closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Health Analytics Service",
        description="Health record storage, event ingestion and cross-collection summaries",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(HealthDataError, health_data_error_handler)

    app.include_router(health.router)
    for router in records.routers:
        app.include_router(router)
    app.include_router(summary.router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_request(request.method, request.url.path, response.status_code, round(process_time, 2))
        return response

    # Outermost, so the request log line carries request_id
    app.add_middleware(RequestContextMiddleware)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
