"""
Serial Allocation Service — Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
from datetime import datetime

from config import settings, check_connection
from exceptions import AppError

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Check database connection
    Shutdown: Clean up resources
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info(
            "database_connected",
            serials_in_use=db_status["serials_in_use"]
        )
    elif db_status["status"] == "not_configured":
        logger.warning("database_not_configured")
    else:
        logger.error(
            "database_connection_failed",
            error=db_status.get("error")
        )

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Serial Allocation Service",
    description="Serial number entry, validation and destination assignment for shipments",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and database connection state
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "database": db_status
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Serial Allocation API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "serial_validation": "/api/serial-numbers/validate",
            "serial_review": "/api/shipment-serials/review",
            "serial_export": "/api/shipment-serials/export"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Return AppError subclasses in the standard error format."""
    logger.warning(
        "app_error",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.serial_numbers import router as serial_numbers_router
from routes.shipment_serials import router as shipment_serials_router

app.include_router(serial_numbers_router)  # Prefix already in router
app.include_router(shipment_serials_router)  # Prefix already in router


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
