# camfleet/main.py
"""
FastAPI application entry point.
Includes security middleware, error handlers, the media mount and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from camfleet.routers import (
    admin, channels, dashboard, devices, divisions, health, layouts, logs, report,
)
from camfleet.database import create_tables
from camfleet.dependencies import build_services
from camfleet.errors import CamFleetError
from camfleet.config import settings
from camfleet.utils.logger import get_logger
import os
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Camera Fleet Dashboard API",
    description="NVR/DVR fleet status, corrective actions, floor-plan layouts and reports.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (dashboard front-end is served from another origin) ────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to the dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Browser sessions (admin mode and dashboard filters are per client) ─────────
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET_KEY,
    session_cookie=settings.SESSION_COOKIE,
    same_site="lax",
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Health check, docs and layout images are always open.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        path = request.url.path
        if path in open_paths or path.startswith("/media/") or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(CamFleetError)
async def camfleet_error_handler(request: Request, exc: CamFleetError):
    logger.info(f"{request.method} {request.url.path} refused ({exc.status_code}): {exc.message.splitlines()[0]}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(dashboard.router, prefix="/api/v1", tags=["📊 Dashboard"])
app.include_router(divisions.router, prefix="/api/v1", tags=["🏢 Divisions"])
app.include_router(devices.router,   prefix="/api/v1", tags=["🗄️ Devices"])
app.include_router(channels.router,  prefix="/api/v1", tags=["🎥 Channels"])
app.include_router(logs.router,      prefix="/api/v1", tags=["📒 Logbook"])
app.include_router(layouts.router,   prefix="/api/v1", tags=["🗺️ Layouts"])
app.include_router(report.router,    prefix="/api/v1", tags=["📝 Report"])
app.include_router(admin.router,     prefix="/api/v1", tags=["🔑 Admin"])
app.include_router(health.router,    prefix="/api/v1", tags=["💚 Health"])

# Layout images for the local storage backend
if settings.STORAGE_BACKEND == "local":
    os.makedirs(settings.STORAGE_DIR, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.STORAGE_DIR), name="media")


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Camera fleet backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")

    services = build_services()
    app.state.services = services
    services.cache.start()
    if await services.cache.refresh():
        logger.info(f"📦 Loaded {len(services.cache.divisions)} divisions, "
                    f"{len(services.cache.devices)} devices")
    logger.info(f"🗂️ Layout storage: {settings.STORAGE_BACKEND} (bucket '{settings.LAYOUT_BUCKET}')")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Camera fleet backend shutting down...")
    services = getattr(app.state, "services", None)
    if services is not None:
        services.cache.stop()
        await services.gateway.feed.drain()
