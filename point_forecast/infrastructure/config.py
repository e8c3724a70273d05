import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv


load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env"))


def parse_forecast_hours(raw: str) -> Tuple[str, ...]:
    """Parse "0-24" or "0,3,6" into zero-padded forecast hours ("000", "003", ...)."""
    raw = raw.strip()
    if "-" in raw and "," not in raw:
        start, end = (int(part) for part in raw.split("-", 1))
        hours = range(start, end + 1)
    else:
        hours = [int(part) for part in raw.split(",") if part.strip()]
    if any(h < 0 for h in hours):
        raise ValueError(f"Forecast hours must be non-negative: {raw}")
    return tuple(f"{h:03d}" for h in hours)


@dataclass
class Settings:
    """Service configuration loaded from environment variables."""

    # Remote source
    base_url: str = os.getenv("GFS_BASE_URL", "https://nomads.ncep.noaa.gov/pub/data/nccf/com/gfs/prod")
    product: str = os.getenv("GFS_PRODUCT", "gfs")
    tier: str = os.getenv("GFS_TIER", "pgrb2")
    resolution: str = os.getenv("GFS_RESOLUTION", "0p25")
    forecast_hours: Tuple[str, ...] = parse_forecast_hours(os.getenv("FORECAST_HOURS", "0-24"))

    # Published data directory, staging directories are created next to it
    output_dir: str = os.getenv("OUTPUT_DIR", "./gfs_data")

    # Download
    # Each worker holds one connection to the remote server
    download_workers: int = int(os.getenv("DOWNLOAD_WORKERS", "4"))
    max_retries: int = int(os.getenv("MAX_RETRIES", "3"))
    retry_delay_seconds: float = float(os.getenv("RETRY_DELAY_SECONDS", "5"))
    min_file_bytes: int = int(os.getenv("MIN_FILE_BYTES", str(1 << 20)))
    download_timeout_seconds: int = int(os.getenv("DOWNLOAD_TIMEOUT_SECONDS", "1800"))

    # Extraction
    # Each worker runs one decoder process at a time
    extract_workers: int = int(os.getenv("EXTRACT_WORKERS", "4"))
    wgrib2_path: str = os.getenv("WGRIB2_PATH", "wgrib2")
    decoder_timeout_seconds: int = int(os.getenv("DECODER_TIMEOUT_SECONDS", "60"))

    # Background refresh of the published directory, 0 disables it
    refresh_interval_minutes: int = int(os.getenv("REFRESH_INTERVAL_MINUTES", "0"))

    # Using metrics
    enable_metrics: bool = os.getenv("ENABLE_METRICS", "true").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
