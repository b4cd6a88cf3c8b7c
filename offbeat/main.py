"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from offbeat.api.routes.chat import router as chat_router
from offbeat.api.routes.config import router as config_router
from offbeat.api.routes.directions import router as directions_router
from offbeat.api.routes.health import router as health_router
from offbeat.api.routes.metrics import router as metrics_router
from offbeat.api.routes.trips import router as trips_router
from offbeat.api.routes.weather import router as weather_router
from offbeat.config import get_settings
from offbeat.db.engine import create_tables, get_async_engine
from offbeat.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)

    # SQLite is for local runs; other databases are migrated with alembic
    if (settings.database_url or "").startswith("sqlite"):
        await create_tables(get_async_engine())

    yield


app = FastAPI(title="Offbeat Trip Planner API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(config_router)
app.include_router(chat_router)
app.include_router(trips_router)
app.include_router(weather_router)
app.include_router(directions_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Offbeat Trip Planner API", "version": "0.1.0"}
