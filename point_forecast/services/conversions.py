import math
from typing import Tuple


KELVIN_OFFSET = 273.15
MS_TO_KNOTS = 1.94384

CARDINALS: Tuple[str, ...] = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


def kelvin_to_celsius(kelvin: float) -> float:
    return kelvin - KELVIN_OFFSET


def celsius_to_kelvin(celsius: float) -> float:
    return celsius + KELVIN_OFFSET


def ms_to_knots(speed_ms: float) -> float:
    return speed_ms * MS_TO_KNOTS


def wind_speed(u: float, v: float) -> float:
    """Magnitude of the horizontal wind vector in the input units."""
    return math.hypot(u, v)


def wind_direction(u: float, v: float) -> float:
    """Meteorological direction the wind blows FROM, degrees in [0, 360).

    0 is from the north, 90 from the east; u is the eastward and v the
    northward component.
    """
    degrees = math.degrees(math.atan2(-u, -v)) % 360.0
    # -0.0 % 360 and values rounding up to 360.0
    if degrees >= 360.0:
        degrees -= 360.0
    return degrees + 0.0


def degrees_to_cardinal(degrees: float) -> str:
    """Map any angle onto the 16-point compass rose."""
    normalized = degrees % 360.0
    index = int(math.floor((normalized + 11.25) / 22.5)) % 16
    return CARDINALS[index]
