import asyncio
import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config.settings import settings
from app.core.responses import (
    http_exception_handler,
    rate_limit_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.database.supabase_client import get_supabase
from app.modules.users import routes as users_routes
from app.modules.auth import routes as auth_routes
from app.modules.profiles import routes as profiles_routes
from app.modules.follows import routes as follows_routes
from app.modules.feed import routes as feed_routes
from app.modules.stories import routes as stories_routes
from app.modules.notifications import routes as notifications_routes
from app.modules.courts import routes as courts_routes
from app.modules.tournaments import routes as tournaments_routes
from app.modules.leaderboards import routes as leaderboards_routes
from app.modules.analytics import routes as analytics_routes
from app.modules.discovery import routes as discovery_routes
from app.modules.subscriptions import routes as subscriptions_routes
from app.modules.media import routes as media_routes
from app.modules.cron import routes as cron_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(users_routes.router, prefix="/api/v1")
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(follows_routes.router, prefix="/api/v1")
app.include_router(feed_routes.router, prefix="/api/v1")
app.include_router(stories_routes.router, prefix="/api/v1")
app.include_router(notifications_routes.router, prefix="/api/v1")
app.include_router(courts_routes.router, prefix="/api/v1")
app.include_router(tournaments_routes.router, prefix="/api/v1")
app.include_router(tournaments_routes.fair_play_router, prefix="/api/v1")
app.include_router(leaderboards_routes.router, prefix="/api/v1")
app.include_router(analytics_routes.router, prefix="/api/v1")
app.include_router(discovery_routes.router, prefix="/api/v1")
app.include_router(subscriptions_routes.router, prefix="/api/v1")
app.include_router(media_routes.router, prefix="/api/v1")
app.include_router(cron_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info(f"Application startup ({settings.environment})")

    if settings.scheduler_enabled:
        from app.modules.cron.scheduler import scheduler_loop
        app.state.scheduler_task = asyncio.create_task(scheduler_loop())
        logger.info(f"Scheduler started - leaderboards and check-in reminders every {settings.scheduler_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "scheduler_task", None)
    if task is not None:
        task.cancel()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to the PadelGraph API", "version": settings.app_version}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: database reachable and required configuration present"""
    checks = {"database": False, "environment": False}
    errors = []

    try:
        get_supabase().table("user_profile").select("id").limit(1).execute()
        checks["database"] = True
    except Exception as e:
        logger.error(f"Readiness database check failed: {e}")
        errors.append(f"database: {e}")

    missing = [name for name in ("supabase_url", "supabase_key") if not getattr(settings, name)]
    if missing:
        errors.append(f"environment: missing {', '.join(missing)}")
    else:
        checks["environment"] = True

    healthy = all(checks.values())
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.app_version,
        "checks": checks,
    }
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=200 if healthy else 503, content=body)
