"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from access_control.core.config import settings
from access_control.core.middleware import setup_middleware
from access_control.core.rate_limiter import limiter
from access_control.core.exceptions import (
    AccessControlError, AuthenticationError, AuthorizationError, BatchCommitError,
    ContextLoadError, ResourceConflictError, ResourceNotFoundError, UnknownAccessLevelError,
)

from access_control.api.admin import router as admin_router
from access_control.api.page_access import router as page_access_router
from access_control.api.permissions import router as permissions_router
from access_control.api.roles import router as roles_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("access_control")

ERROR_STATUS = {
    UnknownAccessLevelError: 422,
    ResourceNotFoundError: 404,
    ResourceConflictError: 409,
    BatchCommitError: 409,
    ContextLoadError: 503,
    AuthenticationError: 401,
    AuthorizationError: 403,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s", settings.APP_NAME)
    from access_control.services.cache_service import cache_service
    if cache_service.health_check():
        logger.info("Redis connected, access contexts cached for %ss", settings.ACCESS_CACHE_TTL_SECONDS)
    else:
        logger.warning("Redis not available, access contexts will be read from the database")

    yield

    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="Access Control Engine API",
    description="Role page-access matrix and resource-action permissions",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(AccessControlError)
async def access_control_exception_handler(request: Request, exc: AccessControlError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400,
    )
    if status_code >= 500 or isinstance(exc, BatchCommitError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# Register routers
app.include_router(permissions_router, prefix="/api")
app.include_router(page_access_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
