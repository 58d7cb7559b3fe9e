from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from house_tracker.config import settings

logger = structlog.get_logger()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("Starting House Tracker API", env=settings.app_env)
    for warning in settings.validate_production():
        logger.warning("Configuration warning", detail=warning)

    from house_tracker.database import create_all_tables
    await create_all_tables()

    db_type = "sqlite" if settings.is_sqlite else "postgresql"
    logger.info("Database ready", backend=db_type)

    yield

    logger.info("Shutting down House Tracker API")


def create_app() -> FastAPI:
    app = FastAPI(
        title="House Tracker API",
        description="Track candidate properties, rate them against weighted criteria and compare rankings.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from house_tracker.api.v1.router import api_router

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check: DB connectivity and record counts."""
        from sqlalchemy import func, select, text

        from house_tracker.database import async_session
        from house_tracker.models import Criterion, Property, Rating

        result = {
            "status": "healthy",
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "unknown",
            "property_count": 0,
            "criterion_count": 0,
            "rating_count": 0,
        }

        try:
            async with async_session() as session:
                await session.execute(text("SELECT 1"))
                result["database"] = "connected"

                for key, model in (
                    ("property_count", Property),
                    ("criterion_count", Criterion),
                    ("rating_count", Rating),
                ):
                    count = await session.execute(select(func.count(model.id)))
                    result[key] = count.scalar() or 0

        except Exception as e:
            logger.warning("Health check database error", error=str(e))
            result["status"] = "degraded"
            result["database"] = f"error: {str(e)[:100]}"

        return result

    return app


app = create_app()
