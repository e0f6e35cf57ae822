"""
Main FastAPI application entry point.

This module creates and configures the FastAPI application with all routes,
middleware, and startup/shutdown handlers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qrcheckin import __version__
from qrcheckin.api import attendees_router, checkin_router, health_router
from qrcheckin.config import settings
from qrcheckin.database import close_db, create_db_and_tables, transaction_gate
from qrcheckin.logging_config import get_logger, setup_logging
from qrcheckin.middleware import ErrorHandlingMiddleware, register_exception_handlers
from qrcheckin.utils.settings_validator import validate_settings

SERVICE_NAME = "QR Registration and Check-in API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger = get_logger("startup")

    logger.info("Starting check-in API", extra={"operation": "startup"})

    # Validate settings before startup
    validation_report = validate_settings()
    if not validation_report["valid"]:
        for error in validation_report["errors"]:
            logger.error(
                f"Configuration error: {error}", extra={"operation": "startup"}
            )
        raise RuntimeError("Invalid configuration - check settings and try again")

    for warning in validation_report["warnings"]:
        logger.warning(
            f"Configuration warning: {warning}", extra={"operation": "startup"}
        )

    logger.info("Creating database tables", extra={"operation": "startup"})
    await create_db_and_tables()
    transaction_gate.reopen()

    logger.info("Application startup complete", extra={"operation": "startup"})

    yield

    # Shutdown drains in-flight check-ins before the pool is disposed
    logger.info("Starting application shutdown", extra={"operation": "shutdown"})
    await close_db()
    logger.info("Application shutdown complete", extra={"operation": "shutdown"})


# Create FastAPI application
app = FastAPI(
    title=SERVICE_NAME,
    description="Looks up attendees from scanned QR codes and records event check-ins.",
    version=__version__,
    docs_url="/docs" if settings.get("DEBUG", False) else None,
    redoc_url="/redoc" if settings.get("DEBUG", False) else None,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Error handling middleware (catches everything raised by routes)
app.add_middleware(ErrorHandlingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get("ALLOWED_ORIGINS", ["*"]),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(attendees_router)
app.include_router(checkin_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with basic information."""
    return {
        "message": SERVICE_NAME,
        "version": __version__,
        "endpoints": {
            "health": "/health",
            "attendees": "/attendees",
            "lookup": "/lookup",
            "checkin": "/checkin",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "qrcheckin.main:app",
        host=settings.get("HOST", "127.0.0.1"),
        port=settings.get("PORT", 5001),
        reload=settings.get("DEBUG", False),
        log_level="info",
    )
