# app/main.py
"""
FastAPI application entry point.
Includes bearer-token middleware, global error handlers, all routers, and the
startup/shutdown hooks that run the telemetry poll loops.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import auth, monitoring, alerts, access_safety, health
from app.database import create_tables
from app.config import settings
from app.services.auth_service import TokenError, decode_token
from app.services.poller import start_polling, stop_polling
from app.services.smart_office import SmartOffice
from app.utils.logger import get_logger
import time

logger = get_logger(__name__)

PROTECTED_PREFIX = "/api/data"

app = FastAPI(
    title="Smart Office API",
    description="Smart office dashboard backend — device control, ThingSpeak telemetry, alerts.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# One device store / telemetry client / scheduler for the whole process
app.state.office = SmartOffice()


# ── Bearer Token Middleware ──────────────────────────────────────────────────
class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    JWT auth for the dashboard data/control API (/api/data/*).
    Auth endpoints, health check and docs stay open. CORS preflights pass through.
    Missing token → 401, invalid or expired token → 403.
    """
    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(PROTECTED_PREFIX) or request.method == "OPTIONS":
            return await call_next(request)

        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Authentication required"},
            )
        try:
            request.state.user = decode_token(token.strip())
        except TokenError:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "Invalid or expired token"},
            )
        return await call_next(request)


if settings.AUTH_ENABLED:
    app.add_middleware(BearerAuthMiddleware)

# ── CORS (added last so it wraps auth errors too) ────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Global Exception Handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(auth.router,          prefix="/api/auth", tags=["🔑 Auth"])
app.include_router(monitoring.router,    prefix=PROTECTED_PREFIX, tags=["💡 Monitoring"])
app.include_router(access_safety.router, prefix=PROTECTED_PREFIX, tags=["🚪 Access & Safety"])
app.include_router(alerts.router,        prefix=PROTECTED_PREFIX, tags=["🔔 Alerts"])
app.include_router(health.router,        prefix="/api", tags=["💚 Health"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Smart Office Backend Running! Access APIs at /api/auth and /api/data."}


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("🚀 Smart Office Backend starting up...")
    create_tables()
    logger.info("✅ Database tables ready")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.POLLING_ENABLED:
        start_polling(app.state.office, settings.POLL_INTERVALS)
    else:
        logger.info("⏸  Telemetry polling disabled (POLLING_ENABLED=false)")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Smart Office Backend shutting down...")
    stop_polling(app.state.office)
    await app.state.office.close()
