from point_forecast.infrastructure.config import Settings, settings
from point_forecast.infrastructure.grid_decoder import Wgrib2Decoder
from point_forecast.services.fetch_service import FetchOrchestrator
from point_forecast.services.forecast_service import ForecastService


# Default implementations of injection
def get_settings() -> Settings:
    """Provide service settings as a dependency."""
    return settings


def get_decoder() -> Wgrib2Decoder:
    """Provide the grid decoder adapter as a dependency."""
    current = get_settings()
    return Wgrib2Decoder(executable=current.wgrib2_path, timeout_seconds=current.decoder_timeout_seconds)


def get_forecast_service() -> ForecastService:
    """Provide the extraction and aggregation engine as a dependency."""
    return ForecastService(get_settings(), get_decoder())


def get_fetch_orchestrator() -> FetchOrchestrator:
    """
    Provide the download orchestrator.

    The caller owns the returned object and should close it (or use it as a
    context manager) to release the HTTP connection pool.
    """
    return FetchOrchestrator(get_settings())
