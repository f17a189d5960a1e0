"""
FastAPI Application Entry Point

QR Dine - restaurant QR ordering backend.
Supports both Mock services (development) and Real APIs (production).

Routers:
    - /api/auth, /api/restaurants, /api/superadmin: accounts and tenants
    - /api/menu, /api/table (/api/tables): menus and table pages
    - /api/orders, /api/webhooks: ordering and payments
    - /api/reviews, /api/service (/api/services), /api/waiting-list, /api/chat
    - GET /api/health: System health check

Author: QR Dine Team
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from qrdine.core.config import get_settings, setup_logging
from qrdine.core.errors import describe_validation_errors, error_location
from qrdine.core.rate_limit import limiter
from qrdine.database import engine, get_db, init_db
from qrdine.routers import (
    auth,
    chat,
    menu,
    orders,
    restaurants,
    reviews,
    service,
    superadmin,
    table,
    waiting_list,
    webhooks,
)
from qrdine.schemas import HealthResponse
from qrdine.services.chat import get_chat_service
from qrdine.services.notifications import get_notification_service
from qrdine.services.payment import get_payment_service

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   Notifications: {settings.notification_backend.value} backend")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"✅ Payment Service: {get_payment_service().provider_name}")
    logger.info(f"✅ Notification Service: {get_notification_service().provider_name}")
    logger.info(f"✅ Chat Service: {get_chat_service().provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant restaurant ordering over table QR codes: menus, orders, "
        "card payments, service requests and staff dashboards."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(menu.router)
app.include_router(orders.router)
app.include_router(restaurants.router)
app.include_router(reviews.router)
app.include_router(service.router, prefix="/api/service")
app.include_router(service.router, prefix="/api/services", include_in_schema=False)
app.include_router(superadmin.router)
app.include_router(table.router, prefix="/api/table")
app.include_router(table.router, prefix="/api/tables", include_in_schema=False)
app.include_router(webhooks.router)
app.include_router(chat.router)
app.include_router(waiting_list.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/api/health",
    }


@app.get(
    "/api/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        client = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        await asyncio.to_thread(client.ping)
        client.close()
    except Exception as e:
        redis_status = f"unhealthy: {e}"
        logger.warning(f"Redis health check failed: {e}")

    payment_status = "healthy" if await get_payment_service().health_check() else "unhealthy"
    notification_status = "healthy" if await get_notification_service().health_check() else "unhealthy"
    chat_status = "healthy" if await get_chat_service().health_check() else "unhealthy"

    checks = [db_status, redis_status, payment_status, notification_status, chat_status]
    overall = "operational" if all(s == "healthy" for s in checks) else "degraded"

    return HealthResponse(
        status=overall,
        environment=settings.env_mode.value,
        database=db_status,
        redis=redis_status,
        payment_service=payment_status,
        notification_service=notification_status,
        chat_service=chat_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation failures are 400s naming the first bad field."""
    errors = exc.errors()
    message = describe_validation_errors(errors)
    logger.info(f"Validation error on {request.method} {request.url.path}: {message}")

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": message,
            "errors": [
                {"field": error_location(e.get("loc", ())), "message": str(e.get("msg", ""))}
                for e in errors
            ],
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.show_error_details else "An unexpected error occurred",
        },
    )
