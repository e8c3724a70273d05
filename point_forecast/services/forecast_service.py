import fnmatch
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from point_forecast.domain.dto import FieldSample, ForecastPoint, GridFile, ModelCycle
from point_forecast.domain.errors import DecodeError, EngineError
from point_forecast.infrastructure.config import Settings
from point_forecast.infrastructure.cycle_resolver import resolve_cycle
from point_forecast.infrastructure.filename_codec import (
    INVALID_HOUR,
    cycle_hour,
    cycle_timestamp,
    forecast_hour,
    glob_pattern,
)
from point_forecast.infrastructure.grid_decoder import Wgrib2Decoder
from point_forecast.metrics.metrics import decode_failures_total, extract_seconds
from point_forecast.services.conversions import (
    degrees_to_cardinal,
    kelvin_to_celsius,
    ms_to_knots,
    wind_direction,
    wind_speed,
)


logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M"


def to_forecast_point(grid_file: GridFile, sample: FieldSample) -> ForecastPoint:
    """Derive the user-facing record from raw decoded values."""
    direction = wind_direction(sample.u_wind_ms, sample.v_wind_ms)
    return ForecastPoint(
        time=cycle_timestamp(grid_file.cycle, grid_file.forecast_hour).strftime(TIME_FORMAT),
        temp_c=kelvin_to_celsius(sample.temperature_k),
        wind_kt=ms_to_knots(wind_speed(sample.u_wind_ms, sample.v_wind_ms)),
        gust_kt=ms_to_knots(sample.gust_ms),
        direction=degrees_to_cardinal(direction),
    )


def merge_points(entries: Iterable[Tuple[GridFile, ForecastPoint]]) -> List[ForecastPoint]:
    """Collapse points to one per valid time, ordered by time.

    When two files resolve to the same minute the one with the larger
    forecast hour wins; equal forecast hours keep the later entry.
    """
    merged: Dict[datetime, Tuple[int, ForecastPoint]] = {}
    for grid_file, point in entries:
        key = cycle_timestamp(grid_file.cycle, grid_file.forecast_hour).replace(second=0, microsecond=0)
        current = merged.get(key)
        if current is None or grid_file.forecast_hour >= current[0]:
            merged[key] = (grid_file.forecast_hour, point)
    return [merged[key][1] for key in sorted(merged)]


def format_table(points: List[ForecastPoint], lon: float, lat: float) -> str:
    lines = [
        f"Coordinates: {lon} {lat}",
        "Timestamp\tTempC\tWindKt\tGustKt\tDirection",
    ]
    for p in points:
        lines.append(f"{p.time}\t{p.temp_c:.1f}\t\t{p.wind_kt:.1f}\t\t{p.gust_kt:.1f}\t\t{p.direction}")
    return "\n".join(lines)


class ForecastService:
    """Builds a point forecast series from the published grid files."""

    def __init__(self, settings: Settings, decoder: Wgrib2Decoder) -> None:
        self.settings = settings
        self.decoder = decoder

    def discover(self, directory: Optional[Path] = None) -> List[Tuple[int, Path]]:
        """List published grid files as (forecast_hour, path), sorted by forecast hour.

        A missing directory means nothing has been published yet. Names that
        do not decode to a forecast hour are ignored.
        """
        directory = Path(directory or self.settings.output_dir)
        if not directory.exists():
            return []
        try:
            names = os.listdir(directory)
        except OSError as exc:
            raise EngineError(f"Error reading data directory {directory}: {exc}") from exc

        pattern = glob_pattern(self.settings.product, self.settings.tier, self.settings.resolution)
        found: List[Tuple[int, Path]] = []
        for name in fnmatch.filter(names, pattern):
            hour = forecast_hour(name)
            if hour == INVALID_HOUR:
                logger.debug("Skipping file with malformed name: %s", name)
                continue
            found.append((hour, directory / name))
        found.sort(key=lambda item: (item[0], item[1].name))
        return found

    def resolve_files(self, discovered: List[Tuple[int, Path]], cycle: Optional[ModelCycle] = None) -> List[GridFile]:
        """Attach a cycle to every discovered file.

        File names only carry the cycle hour, the date comes from `cycle`
        (defaulting to the currently expected cycle). A file whose cycle hour
        is later than the reference hour belongs to the previous day.
        """
        reference = cycle or resolve_cycle()
        files: List[GridFile] = []
        for hour, path in discovered:
            file_cycle_hour = cycle_hour(path)
            if file_cycle_hour == INVALID_HOUR:
                continue
            cycle_date = reference.cycle_date
            if file_cycle_hour > reference.hour:
                cycle_date -= timedelta(days=1)
            files.append(
                GridFile(
                    cycle=ModelCycle(cycle_date=cycle_date, hour=file_cycle_hour),
                    forecast_hour=hour,
                    path=path,
                )
            )
        return files

    def forecast(self, lon: float, lat: float, cycle: Optional[ModelCycle] = None) -> List[ForecastPoint]:
        """Return the deduplicated, time-ordered forecast for one coordinate.

        Files that fail to decode are logged and left out; an empty data
        directory gives an empty list.
        """
        files = self.resolve_files(self.discover(), cycle)
        if not files:
            logger.info("No grid files found in %s", self.settings.output_dir)
            return []
        self.decoder.ensure_available()

        with ThreadPoolExecutor(
            max_workers=max(1, self.settings.extract_workers),
            thread_name_prefix="grid-extract",
        ) as executor:
            futures = [executor.submit(self._extract, f, lon, lat) for f in files]

        # Collected in file order so merge ties resolve deterministically
        entries: List[Tuple[GridFile, ForecastPoint]] = []
        for grid_file, future in zip(files, futures):
            sample = future.result()
            if sample is not None:
                entries.append((grid_file, to_forecast_point(grid_file, sample)))

        points = merge_points(entries)
        logger.info("Forecast for lon=%s lat=%s: %d point(s) from %d file(s)", lon, lat, len(points), len(files))
        return points

    def _extract(self, grid_file: GridFile, lon: float, lat: float) -> Optional[FieldSample]:
        start = time.perf_counter()
        try:
            return self.decoder.extract(grid_file.path, lon, lat)
        except DecodeError as exc:
            decode_failures_total.inc()
            logger.warning("Error processing %s: %s", grid_file.path, exc)
            return None
        finally:
            extract_seconds.observe(time.perf_counter() - start)
