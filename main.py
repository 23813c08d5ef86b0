"""
FastAPI application entry point
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from starlette.responses import Response as RawResponse

from api.routes import customers, users
from api.middleware import LoggingMiddleware, MetricsMiddleware, RequestIDMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.metrics import ServiceMetrics
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.database import create_tables, engine


configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    # Development creates tables directly; production runs Alembic migrations
    if settings.DEBUG:
        await create_tables()
        logger.info("database_initialized", message="Database tables created (development)")
    else:
        logger.info(
            "database_migrations_required",
            message="No auto-create in production, use Alembic migrations (alembic upgrade head)"
        )
    logger.info(
        "application_started",
        max_bulk_concurrency=settings.bulk.max_concurrency,
        bulk_timeout=settings.bulk.timeout_seconds,
    )

    yield

    await engine.dispose()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Account user management with concurrent bulk create/update",
)

# Built at import so tests get it without running the lifespan
app.state.metrics = (
    ServiceMetrics(namespace=settings.metrics.namespace) if settings.metrics.enabled else None
)

# Middleware runs bottom-up: the last one added sees the request first
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
# Request ID runs first so every later log line carries it
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(users.router, prefix="/api/v1")
app.include_router(customers.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
        },
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return success_response(data={"status": "healthy"})


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics(request: Request):
    service_metrics = request.app.state.metrics
    if service_metrics is None:
        return RawResponse(status_code=404)
    body, content_type = service_metrics.render()
    return RawResponse(content=body, media_type=content_type)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
