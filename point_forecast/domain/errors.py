"""Application exception classes."""

from typing import List


class PointForecastError(Exception):
    """Base class for all service failures."""


class FetchError(PointForecastError):
    """Base class for download cycle failures."""


class DownloadError(FetchError):
    """Raised for transient download failures: network errors, bad status, undersized body."""


class StagingError(FetchError):
    """Raised when the staging or published directory cannot be created, written or renamed."""


class FetchFailedError(FetchError):
    """Raised when at least one forecast hour could not be downloaded after all retries."""

    def __init__(self, failed_hours: List[str]) -> None:
        self.failed_hours = sorted(failed_hours)
        self.failed_count = len(self.failed_hours)
        super().__init__(f"{self.failed_count} download(s) failed")


class DecodeError(PointForecastError):
    """Raised when the grid decoder fails or its output cannot be parsed for one file."""


class DecoderUnavailableError(PointForecastError):
    """Raised when the external grid decoder executable cannot be found."""


class EngineError(PointForecastError):
    """Raised when the forecast engine cannot run at all, e.g. an unreadable data directory."""
