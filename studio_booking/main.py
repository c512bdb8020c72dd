# studio_booking/main.py
"""
Application factory for the studio booking API.

Run with:
    uvicorn studio_booking.main:app
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response

from . import __version__
from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import reservations as reservations_v1

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup outside of tests."""
    logger.info(f"Studio booking API starting up (environment={settings.environment})")
    if not settings.is_testing:
        init_db()
    yield
    logger.info("Studio booking API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Studio Booking API",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
    )
    register_error_handlers(app)

    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(reservations_v1.router, prefix="/reservations")
    app.include_router(api_v1)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict:
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.get_content_type(),
        )

    return app


app = create_app()
