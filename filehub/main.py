"""
FastAPI backend for FileHub.

File sharing with a folder hierarchy, messages and announcements,
comments, notifications and role-based administration.

This main file handles app initialization and router mounting.
All endpoints are organized in the routers/ directory.
"""

import uuid
import logging
from pathlib import Path
from datetime import datetime
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables
env_paths = [
    Path(__file__).parent.parent / '.env',
    Path(__file__).parent / '.env',
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .routers import (
    auth, profiles, admin, categories, files, messages, comments,
    notifications, dashboard, storage, websocket,
)
from .database import init_db, check_database_health
from .exceptions import FileHubError
from .security_middleware import SecurityHeadersMiddleware, HTTPSRedirectMiddleware
from .storage import get_object_storage
from .config import settings

# =============================================================================
# Configuration
# =============================================================================

ALLOWED_ORIGINS = settings.allowed_origins
TESTING = settings.testing

# Logging setup (configurable via environment variable)
LOG_LEVEL = settings.log_level
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

# =============================================================================
# Lifespan Event Handler
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for FastAPI application.
    Creates tables and the storage bucket on startup.
    """
    init_db()
    logger.info("Database initialized")

    bucket = get_object_storage()
    logger.info(f"Storage bucket '{bucket.bucket}' ready")

    yield  # Application runs here

    logger.info("Application shutting down")

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="FileHub",
    description="File sharing, announcements and notifications with role-based folders",
    version="1.0.0",
    lifespan=lifespan
)

# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(FileHubError)
async def filehub_error_handler(request: Request, exc: FileHubError):
    """Render service errors as {"detail": message} with the error's status code."""
    request_id = getattr(request.state, "request_id", "-")
    if exc.status_code >= 500:
        logger.error(f"[{request_id}] {type(exc).__name__}: {exc.message}", exc_info=exc)
    else:
        logger.info(f"[{request_id}] {type(exc).__name__} ({exc.status_code}): {exc.message}")

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.
    Includes Retry-After header for better client handling.
    """
    detail = str(exc.detail)
    retry_after = 60
    if 'hour' in detail.lower():
        retry_after = 3600
    elif 'second' in detail.lower():
        retry_after = 1

    return JSONResponse(
        status_code=429,
        content={
            "detail": f"Rate limit exceeded: {detail}",
            "retry_after_seconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)}
    )

limiter = Limiter(key_func=get_remote_address, enabled=not TESTING)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)
logger.info("Rate limiting " + ("relaxed (test mode)" if TESTING else "enabled"))

# =============================================================================
# Middleware
# =============================================================================

# CORS
origins = ALLOWED_ORIGINS.split(',') if ALLOWED_ORIGINS != '*' else ['*']

if origins == ['*'] and settings.is_production:
    logger.warning(
        "SECURITY WARNING: CORS is set to allow ALL origins (*). "
        "Set FILEHUB_ALLOWED_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in origins],
    allow_credentials=origins != ['*'],
    allow_methods=["*"],
    allow_headers=["*"],
)

environment = settings.environment
logger.info(f"Running in {environment} environment")

app.add_middleware(SecurityHeadersMiddleware, environment=environment)

if environment == "production":
    app.add_middleware(HTTPSRedirectMiddleware, environment=environment)
    logger.info("HTTPS enforcement enabled")


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """
    Add unique request ID to each request for tracing.
    Honors an incoming X-Request-ID from a proxy.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response

# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(auth.router)
app.include_router(profiles.router)
app.include_router(admin.router)
app.include_router(categories.router)
app.include_router(files.router)
app.include_router(messages.router)
app.include_router(comments.router)
app.include_router(notifications.router)
app.include_router(dashboard.router)
app.include_router(storage.router)
app.include_router(websocket.router)

# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Reports database connectivity and whether the storage bucket directory
    is writable.
    """
    health_data = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": environment,
        "dependencies": {}
    }

    health_data["dependencies"]["database"] = check_database_health()

    try:
        bucket_dir = get_object_storage().bucket_dir
        probe = bucket_dir / f".health-{uuid.uuid4().hex}"
        probe.write_bytes(b"ok")
        probe.unlink()
        health_data["dependencies"]["storage_writable"] = True
    except OSError as e:
        health_data["dependencies"]["storage_writable"] = False
        logger.error(f"Storage health check failed: {e}")

    if not (
        health_data["dependencies"]["database"].get("database_connected")
        and health_data["dependencies"]["storage_writable"]
    ):
        health_data["status"] = "degraded"

    return health_data
