"""
Academic-warning report lifecycle API: reports, assessment cycles, note threads and notifications.
"""
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

import config
from core.logger import logger
from database.connection import Database
from middleware.security import SecurityHeadersMiddleware, setup_cors
from services.audit_service import AuditLogService
from services.lifecycle_service import ReportLifecycleService
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository
from services.student_affairs_service import StudentAffairsService
from services.versioning_service import ReportVersioningService
from storage.failover import FailoverStore
from storage.local_store import LocalReportStore
from storage.sql_store import SqlReportStore
from routers.reports import router as reports_router
from routers.notifications import router as notifications_router
from routers.dashboards import router as dashboards_router


def init_services(database: Optional[Database], fallback: Optional[LocalReportStore]) -> FailoverStore:
    """
    Build the store and the services on top of it and publish them on `config`.

    Args:
        database: Primary database, or None to run on the fallback only
        fallback: Local store used while the database is unreachable, or None

    Returns:
        The failover store every service talks to
    """
    primary = SqlReportStore(database) if database is not None else None
    store = FailoverStore(primary, fallback, reprobe_seconds=config.STORE_REPROBE_SECONDS)

    notifications = NotificationDispatcher(
        store,
        retention_limit=config.NOTIFICATION_RETENTION_LIMIT,
        default_campus=config.DEFAULT_CAMPUS,
        poll_interval_seconds=config.NOTIFICATION_POLL_INTERVAL_SECONDS,
    )
    repository = ReportRepository(store, notifications)
    audit = AuditLogService(store, repository)

    config.db = database
    config.store = store
    config.notifications = notifications
    config.repository = repository
    config.audit = audit
    config.versioning = ReportVersioningService(
        store, repository, notifications, preview_length=config.NOTIFICATION_PREVIEW_LENGTH
    )
    config.lifecycle = ReportLifecycleService(repository, notifications)
    config.student_affairs = StudentAffairsService(repository, audit)
    return store


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for FastAPI app.
    Connect the database, open the local fallback store and wire the services.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {config.APP_NAME}...")
    logger.info("=" * 60)

    database = None
    try:
        database = Database(
            database_url=config.DATABASE_URL,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            timeout_seconds=config.STORE_REQUEST_TIMEOUT_SECONDS,
        )
        # Create tables if they don't exist
        database.create_tables()
        logger.info("Database initialized successfully")
    except SQLAlchemyError as e:
        if not config.USE_LOCAL_FALLBACK:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise
        # Keep the engine: the failover store re-probes it and switches back once it answers
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        logger.warning("Continuing on the local fallback store until the database answers")

    fallback = None
    if config.USE_LOCAL_FALLBACK:
        fallback = LocalReportStore(config.LOCAL_STORE_PATH or None)
    else:
        logger.info("Local fallback store disabled")

    store = init_services(database, fallback)

    logger.info("=" * 60)
    logger.info(f"Server ready! Store answering: {store.name}")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info("API Docs: http://localhost:8000/docs")
    logger.info("=" * 60)

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if config.db:
        config.db.dispose()


# Initialize FastAPI app
app = FastAPI(
    title=config.APP_NAME,
    description="Academic-warning report lifecycle, versioning and notification API",
    version=config.APP_VERSION,
    lifespan=lifespan
)

# Setup security middleware
app.add_middleware(SecurityHeadersMiddleware)
setup_cors(app, config.CORS_ORIGINS)

# Include routers
app.include_router(reports_router)
app.include_router(notifications_router)
app.include_router(dashboards_router)


@app.get("/")
async def root():
    """Root endpoint with API information. Public endpoint."""
    return {
        "message": config.APP_NAME,
        "version": config.APP_VERSION,
        "environment": config.ENVIRONMENT,
        "endpoints": {
            "reports": "/api/reports",
            "notifications": "/api/notifications",
            "dashboard": "/api/dashboard/stats",
            "health": "/health",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring. Public endpoint."""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "checks": {}
    }

    if config.store is None:
        health_status["status"] = "error"
        health_status["checks"]["store"] = {"status": "error", "error": "not initialized"}
        return health_status

    primary_ok = config.store.probe()
    health_status["checks"]["database"] = {"status": "ok" if primary_ok else "unavailable"}
    health_status["checks"]["store"] = {"answering": config.store.name}
    if not primary_ok:
        # Still serving from the local store
        health_status["status"] = "degraded"

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
