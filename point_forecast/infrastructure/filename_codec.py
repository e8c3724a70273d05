import os
import re
from datetime import datetime, timedelta

from point_forecast.domain.dto import ModelCycle


INVALID_HOUR = -1

# e.g. gfs.t00z.pgrb2.0p25.f003
_FILENAME_RE = re.compile(
    r"^(?P<product>[a-z0-9]+)\.t(?P<cycle>\d{2})z\.(?P<tier>[a-z0-9]+)\.(?P<resolution>\d+p\d+)\.f(?P<offset>\d{3,})$"
)


def encode_filename(
    cycle_hour: int,
    forecast_hour: int,
    product: str = "gfs",
    tier: str = "pgrb2",
    resolution: str = "0p25",
) -> str:
    """Build the published file name for one cycle hour and forecast hour."""
    if not 0 <= cycle_hour <= 23:
        raise ValueError(f"Cycle hour out of range: {cycle_hour}")
    if forecast_hour < 0:
        raise ValueError(f"Forecast hour must be non-negative: {forecast_hour}")
    return f"{product}.t{cycle_hour:02d}z.{tier}.{resolution}.f{forecast_hour:03d}"


def glob_pattern(product: str = "gfs", tier: str = "pgrb2", resolution: str = "0p25") -> str:
    """Glob pattern matching every published file of a product."""
    return f"{product}.t*z.{tier}.{resolution}.f*"


def _match(filename: str):
    return _FILENAME_RE.match(os.path.basename(str(filename)))


def forecast_hour(filename: str) -> int:
    """Return the forecast hour encoded in a file name or path, INVALID_HOUR if the name is malformed."""
    m = _match(filename)
    if m is None:
        return INVALID_HOUR
    return int(m.group("offset"))


def cycle_hour(filename: str) -> int:
    """Return the cycle hour encoded in a file name or path, INVALID_HOUR if the name is malformed."""
    m = _match(filename)
    if m is None:
        return INVALID_HOUR
    hour = int(m.group("cycle"))
    if hour > 23:
        return INVALID_HOUR
    return hour


def cycle_timestamp(cycle: ModelCycle, forecast_hour: int) -> datetime:
    """Valid time of a forecast hour: cycle start plus the offset."""
    return cycle.start + timedelta(hours=forecast_hour)
