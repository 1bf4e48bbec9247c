"""
Tube Bender Score API - FastAPI application
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette_context import plugins
from starlette_context.middleware import ContextMiddleware
import sentry_sdk

from benderscore.api.v1 import api_router
from benderscore.api.v1.admin import limiter
from benderscore.core.config import settings
from benderscore.core.database import DatabaseSessionManager, db_manager
from benderscore.core.logging import setup_logging, log
from benderscore.core.exceptions import BaseAPIException, handle_api_exception, handle_unexpected_exception
from benderscore.middleware import RequestTraceMiddleware, SecurityHeadersMiddleware
from benderscore.services.catalog import CatalogReader, JsonCatalogReader
from benderscore.services.overlay import OverlayStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events
    """
    # Setup logging
    setup_logging()

    log.info("Starting Tube Bender Score API", version=settings.VERSION, env=settings.ENVIRONMENT)

    # Initialize Sentry if configured
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
        )
        log.info("Sentry initialized")

    db: DatabaseSessionManager = app.state.db
    db.init()
    # SQLite databases are created in place; PostgreSQL schemas come from Alembic
    if db.config.is_sqlite:
        await db.create_all()

    yield

    # Shutdown
    log.info("Shutting down Tube Bender Score API")
    await db.close()


def create_application(
    db: Optional[DatabaseSessionManager] = None,
    catalog: Optional[CatalogReader] = None,
    overlay: Optional[OverlayStore] = None,
) -> FastAPI:
    """
    Create FastAPI application with all configurations
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json" if settings.DEBUG else None,
        docs_url=f"{settings.API_V1_STR}/docs" if settings.DEBUG else None,
        redoc_url=f"{settings.API_V1_STR}/redoc" if settings.DEBUG else None,
        default_response_class=ORJSONResponse,  # Fast JSON responses
        lifespan=lifespan,
        debug=settings.DEBUG,
        openapi_tags=[
            {"name": "health", "description": "Health check endpoints"},
            {"name": "products", "description": "Product catalog and scores"},
            {"name": "scoring", "description": "Scoring methodology"},
            {"name": "admin", "description": "Draft/publish workflow and overlay edits"},
        ],
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True,
        }
    )

    # Long-lived collaborators, injected into routes through api.deps
    app.state.db = db or db_manager
    app.state.catalog = catalog or JsonCatalogReader(settings.catalog_path)
    app.state.overlay = overlay or OverlayStore(settings.overlay_path)
    app.state.limiter = limiter

    # Add custom exception handlers
    app.add_exception_handler(BaseAPIException, handle_api_exception)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, handle_unexpected_exception)

    # Add middleware stack (last added runs first)

    # Request tracing (innermost, reads the request context)
    app.add_middleware(RequestTraceMiddleware)

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # Request context (correlation IDs)
    app.add_middleware(
        ContextMiddleware,
        plugins=(
            plugins.RequestIdPlugin(),
            plugins.CorrelationIdPlugin(
                force_new_uuid=False
            ),
        )
    )

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # CORS (outermost)
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "X-Process-Time"]
        )

    # Add API routes
    app.include_router(api_router, prefix=settings.API_V1_STR)

    # Add Prometheus metrics
    if settings.ENVIRONMENT != "development":
        instrumentator = Instrumentator()
        instrumentator.instrument(app).expose(app, endpoint="/metrics")

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root() -> Dict[str, Any]:
        """Root endpoint with API information"""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "docs": f"{settings.API_V1_STR}/docs" if settings.DEBUG else None,
            "openapi": f"{settings.API_V1_STR}/openapi.json" if settings.DEBUG else None,
        }

    return app


# Create the application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "benderscore.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=settings.WORKERS if not settings.DEBUG else 1,
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle access logs in middleware
        server_header=False,
    )
