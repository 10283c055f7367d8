# backend/marketplace/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import APIRouter, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .core.broadcast import connect_broadcast, disconnect_broadcast
from .core.config import is_running_tests, settings
from .core.request_context import attach_request_id_filter
from .database import SessionLocal, get_db_pool_status
from .errors import register_error_handlers
from .middleware.request_id import RequestIdMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import (
    bookings as bookings_v1,
    catalog as catalog_v1,
    chats as chats_v1,
    notifications as notifications_v1,
    providers as providers_v1,
    reviews as reviews_v1,
    subscriptions as subscriptions_v1,
    users as users_v1,
)

API_TITLE = "Marketplace API"
API_VERSION = "1.0.0"

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("%s starting up (environment=%s)", API_TITLE, settings.environment)
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    if settings.live_push_enabled:
        try:
            await connect_broadcast()
        except Exception as e:
            # Live push is best effort; the API keeps serving without it.
            logger.error("Broadcaster connection failed, live push disabled: %s", e)

    yield

    logger.info("%s shutting down", API_TITLE)
    await disconnect_broadcast()


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(chats_v1.router, prefix="/chats")
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(reviews_v1.router, prefix="/reviews")
api_v1.include_router(providers_v1.router, prefix="/providers")
api_v1.include_router(subscriptions_v1.router, prefix="/subscriptions")
api_v1.include_router(catalog_v1.router, prefix="/catalog")
api_v1.include_router(users_v1.router, prefix="/users")
app.include_router(api_v1)


def _database_ok() -> bool:
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Health check database probe failed: %s", e)
        return False
    finally:
        db.close()


@app.get("/health")
def health_check(response: Response) -> Dict[str, Any]:
    database_ok = _database_ok()
    if not database_ok:
        response.status_code = 503
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "marketplace-api",
        "version": API_VERSION,
        "environment": settings.environment,
        "database": "ok" if database_ok else "unavailable",
        "db_pool": get_db_pool_status(),
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=prometheus_metrics.get_metrics(), media_type=prometheus_metrics.content_type)
