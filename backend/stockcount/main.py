"""FastAPI application."""
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import DEFAULT_JWT_SECRET, settings
from .database import get_db
from .error_responses import register_error_handlers
from .routers import (
    audit,
    auth,
    bin_master,
    counting_data,
    counting_sessions,
    otp_requests,
    users,
    worker_performance,
)

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

# Create app
app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    description="Backend API for warehouse stock counting",
)

# Production safety checks.
if settings.ENV.lower() == "production" and settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")
if settings.ENV.lower() == "production" and settings.cors_allow_any_origin:
    logger.warning("ALLOWED_ORIGINS is a wildcard in production")

# CORS. Bearer tokens only, so credentials are never needed cross-origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=not settings.cors_allow_any_origin,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "apikey", "x-client-info"],
)

register_error_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(bin_master.router, prefix="/api/v1")
app.include_router(counting_sessions.router, prefix="/api/v1")
app.include_router(counting_data.router, prefix="/api/v1")
app.include_router(worker_performance.router, prefix="/api/v1")
app.include_router(otp_requests.router, prefix="/api/v1")
app.include_router(audit.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check database probe failed")
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": APP_VERSION,
        "database": database,
    }


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": APP_VERSION,
        "docs": "/docs",
    }
