"""
main.py — Jataayu Entry Point
==============================
This is the file you run to start the entire system.
It does 4 things in order:
    1. Creates the FastAPI app
    2. Connects the database
    3. Connects the object storage backend
    4. Registers all API route modules

Run with:
    uvicorn main:app --reload --host 0.0.0.0 --port 8000

Or simply:
    python main.py
"""

import logging
import uvicorn
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import settings

# ── Database ──────────────────────────────────────────────────────────────────
from db.session import init_db, close_db

# ── Core systems ──────────────────────────────────────────────────────────────
from core.errors import errors_from_pydantic
from core.realtime import connections        # live websocket registry
from core.storage import storage              # uploaded file backend

# ── API Routers (one per area) ────────────────────────────────────────────────
from api.routes_auth import router as auth_router
from api.routes_users import router as users_router
from api.routes_events import router as events_router
from api.routes_registrations import router as registrations_router
from api.routes_notifications import router as notifications_router
from api.routes_initiatives import router as initiatives_router
from api.routes_realtime import router as realtime_router


# ── Logging setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[
        logging.StreamHandler(),                          # print to terminal
        logging.FileHandler(settings.LOG_FILE),           # also save to file
    ],
)
logger = logging.getLogger("jataayu.main")


# ── Lifespan: runs on startup and shutdown ────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── STARTUP ──────────────────────────────────────────────────────────
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    logger.info("Connecting to database...")
    await init_db()
    logger.info("✓ Database ready")

    logger.info(f"Connecting to storage ({settings.STORAGE_BACKEND})...")
    await storage.connect()
    logger.info("✓ Storage ready")

    logger.info("=" * 50)
    logger.info(f"  {settings.APP_NAME} is LIVE on port {settings.PORT}")
    logger.info("=" * 50)

    yield

    # ── SHUTDOWN ─────────────────────────────────────────────────────────
    logger.info("Shutting down — closing connections...")
    await storage.disconnect()
    await close_db()
    logger.info("✓ Shutdown complete")


# ── Create the FastAPI app ────────────────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Events, registrations, notifications and initiatives administration",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control", "Pragma"],
)

# Only accept requests from known hosts in production
if settings.ENVIRONMENT == "production":
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)


# ── Error handling ────────────────────────────────────────────────────────────
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed input → 400 with one entry per offending field."""
    return JSONResponse(
        status_code=400,
        content={"detail": {"errors": errors_from_pydantic(exc.errors())}},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Anything unplanned → generic 500. Details stay in the log."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Server error"})


# ── Register all routers ──────────────────────────────────────────────────────
app.include_router(auth_router,          prefix="/api/auth",                tags=["Auth"])
app.include_router(users_router,         prefix="/api/users",               tags=["Users"])
app.include_router(events_router,        prefix="/api/events",              tags=["Events"])
app.include_router(registrations_router, prefix="/api/event-registrations", tags=["Event Registrations"])
app.include_router(notifications_router, prefix="/api/notifications",       tags=["Notifications"])
app.include_router(initiatives_router,   prefix="/api/initiatives",         tags=["Initiatives"])
app.include_router(realtime_router,      prefix="/ws",                      tags=["Realtime"])

# Uploaded files (local storage backend)
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


# ── Root endpoint ─────────────────────────────────────────────────────────────
@app.get("/", tags=["Status"])
async def root():
    """Health check — confirms the API is running."""
    return {
        "system": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
    }


@app.get("/health-check", tags=["Status"])
async def health_check():
    """Deep health check — storage backend and live socket count."""
    return {
        "api": "ok",
        "database": "ok",
        "storage": await storage.ping(),
        "live_connections": len(connections),
    }


# ── Run directly ──────────────────────────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
