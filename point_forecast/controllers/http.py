import math
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.status import HTTP_200_OK, HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from point_forecast.domain.dto import ForecastPoint
from point_forecast.domain.errors import DecoderUnavailableError, EngineError
from point_forecast.infrastructure.service_provider import get_forecast_service
from point_forecast.services.forecast_service import ForecastService


router = APIRouter()


def _parse_coordinate(raw: Optional[str], name: str, lower: float, upper: float) -> float:
    if raw is None or not raw.strip():
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=f"Missing query parameter: {name}")
    try:
        value = float(raw)
    except ValueError as exc:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=f"Invalid {name}: {raw!r}") from exc
    if not math.isfinite(value) or not lower <= value <= upper:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} {raw}; expected between {lower:g} and {upper:g}",
        )
    return value


@router.get("/health", status_code=HTTP_200_OK, summary="Health check", tags=["system"])
def health() -> dict:
    """Returns 200 OK if the service is up."""
    return {"status": "ok"}


@router.get(
    "/forecast",
    status_code=HTTP_200_OK,
    response_model=List[ForecastPoint],
    summary="Point forecast from the published GFS files",
    tags=["usage"],
)
def forecast(
    lon: Optional[str] = Query(None, description="Longitude in decimal degrees, -180..360"),
    lat: Optional[str] = Query(None, description="Latitude in decimal degrees, -90..90"),
    service: ForecastService = Depends(get_forecast_service),
) -> List[ForecastPoint]:
    """Extracts temperature and wind at a coordinate from every published forecast hour.

    - On malformed coordinates returns 400 with details
    - On engine or decoder failure returns 500 with details
    """
    lon_value = _parse_coordinate(lon, "lon", -180.0, 360.0)
    lat_value = _parse_coordinate(lat, "lat", -90.0, 90.0)

    try:
        return service.forecast(lon_value, lat_value)
    except (EngineError, DecoderUnavailableError) as exc:
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Forecast error: {exc}") from exc
