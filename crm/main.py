"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crm.core.config import settings
from crm.core.middleware import setup_middleware
from crm.core.exceptions import CRMError

from crm.api.auth import router as auth_router
from crm.api.users import router as users_router
from crm.api.groups import router as groups_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("crm")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    if not settings.SMTP_HOST:
        logger.warning("SMTP_HOST not set, invitation and reset emails will not be delivered")

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="CRM Accounts API",
    description="User accounts, invitations and sessions for the CRM",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


# Domain errors carry their own HTTP status
@app.exception_handler(CRMError)
async def crm_exception_handler(request: Request, exc: CRMError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(groups_router, prefix="/api")


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
