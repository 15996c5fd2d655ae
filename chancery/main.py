"""
Chancery Staff Service - Main FastAPI Application

Registration, succession and term history for diocesan chancellors and
parish staff. Configures middleware, routes, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import settings
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .scheduler.audit_retry_scheduler import start_scheduler, stop_scheduler
from .services.container import get_audit_writer
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


def _uses_mongo() -> bool:
    return settings.store_backend.lower() == "mongo"


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Creates MongoDB indexes (mongo backend only)
        - Starts the audit retry scheduler

    Shutdown:
        - Stops scheduler
        - Closes database connections
    """
    logger.info(f"Starting Chancery Staff Service ({settings.environment})...")

    if _uses_mongo():
        try:
            create_indexes()
            logger.info("MongoDB indexes created")
        except Exception as e:
            logger.error(f"Failed to create indexes: {e}")

    try:
        start_scheduler(get_audit_writer())
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}")

    logger.info("Application started successfully")

    yield

    logger.info("Shutting down...")
    stop_scheduler()
    if _uses_mongo():
        close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    application = FastAPI(
        title="Chancery Staff Service",
        description="Staff registration, succession workflow and term history",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)

    return application


def _configure_middleware(app: FastAPI) -> None:
    """Configure application middleware."""
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    def health():
        """Health check including record store connectivity (no auth)"""
        if _uses_mongo():
            store = health_check()
        else:
            store = {"status": "healthy", "backend": "memory"}
        return {
            "status": "healthy" if store.get("status") == "healthy" else "degraded",
            "version": APP_VERSION,
            "environment": settings.environment,
            "store": store,
            "audit_pending": get_audit_writer().pending_count,
        }


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
