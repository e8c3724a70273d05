from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from point_forecast.domain.dto import FieldSample
from point_forecast.domain.errors import DecodeError
from point_forecast.infrastructure.config import Settings


@pytest.fixture
def make_settings(tmp_path):
    """Factory for Settings pointing at a temporary data directory."""

    def _make(**overrides) -> Settings:
        values = dict(
            output_dir=str(tmp_path / "gfs_data"),
            forecast_hours=("000", "001", "002"),
            download_workers=2,
            extract_workers=2,
            max_retries=2,
            retry_delay_seconds=0,
            min_file_bytes=1024,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


class FakeDecoder:
    """Decoder double returning canned samples keyed by file name."""

    def __init__(
        self,
        samples: Optional[Dict[str, FieldSample]] = None,
        default: Optional[FieldSample] = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.samples = samples or {}
        self.default = default
        self.failing = set(failing)
        self.calls = []

    def ensure_available(self) -> None:
        pass

    def extract(self, path: Path, lon: float, lat: float) -> FieldSample:
        self.calls.append((Path(path).name, lon, lat))
        name = Path(path).name
        if name in self.failing:
            raise DecodeError(f"wgrib2 exited with status 8 on {path}")
        sample = self.samples.get(name, self.default)
        if sample is None:
            raise DecodeError(f"insufficient data in file: {path}")
        return sample


def write_grid_files(directory: Path, names: Iterable[str]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / name).write_bytes(b"GRIB")
