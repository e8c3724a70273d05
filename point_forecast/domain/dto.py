from __future__ import annotations

from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ModelCycle(BaseModel):
    """A single model run: the cycle date and one of the four daily start hours (UTC)."""

    model_config = ConfigDict(frozen=True)

    cycle_date: date
    hour: int = Field(ge=0, le=23)

    @property
    def start(self) -> datetime:
        return datetime.combine(self.cycle_date, time(hour=self.hour), tzinfo=timezone.utc)

    @property
    def date_str(self) -> str:
        return self.cycle_date.strftime("%Y%m%d")

    @property
    def hour_str(self) -> str:
        return f"{self.hour:02d}"


class GridFile(BaseModel):
    """One published forecast product for a (cycle, forecast hour) pair."""

    model_config = ConfigDict(frozen=True)

    cycle: ModelCycle
    forecast_hour: int = Field(ge=0)
    path: Path


class FieldSample(BaseModel):
    """Raw point values decoded from one grid file."""
    # Infinite or NaN values make the sample invalid, pydantic rejects them on construction

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    temperature_k: float
    u_wind_ms: float
    v_wind_ms: float
    gust_ms: float


class ForecastPoint(BaseModel):
    """User-facing forecast record, serialized as-is by the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    time: str
    temp_c: float
    wind_kt: float
    gust_kt: float
    direction: str


class DownloadJob(BaseModel):
    """Work item for a download worker: one zero-padded forecast hour, e.g. "003"."""

    model_config = ConfigDict(frozen=True)

    forecast_hour: str


class FetchReport(BaseModel):
    """Summary of a successfully published download cycle."""

    cycle: ModelCycle
    published_dir: Path
    downloaded: List[str] = Field(default_factory=list)
    reused: List[str] = Field(default_factory=list)
