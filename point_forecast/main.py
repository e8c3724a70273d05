import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from point_forecast.infrastructure.refresh_loop import run_refresh_loop
from point_forecast.infrastructure.service_provider import get_fetch_orchestrator, get_settings
from point_forecast.controllers.http import router as http_router
from point_forecast.metrics.metrics import setup_metrics


async def on_startup(app: FastAPI) -> None:
    """Start the periodic download cycle alongside the API when it is enabled."""
    settings = get_settings()
    if settings.refresh_interval_minutes > 0:
        app.state.refresh_task = asyncio.create_task(run_refresh_loop(settings, get_fetch_orchestrator))


async def on_shutdown(app: FastAPI) -> None:
    """Stop the background refresh task"""
    task = getattr(app.state, "refresh_task", None)
    if task is not None and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Expected during shutdown
            pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    await on_startup(app)
    try:
        yield
    finally:
        await on_shutdown(app)


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.
    """
    app = FastAPI(title="GFS Point Forecast", version="1.0.0", lifespan=lifespan)

    # Health and forecast endpoints
    app.include_router(http_router)

    # Prometheus metrics endpoint
    setup_metrics(app, enabled=get_settings().enable_metrics)

    return app


app = create_app()
