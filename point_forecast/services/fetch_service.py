import logging
import os
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from point_forecast.domain.dto import DownloadJob, FetchReport, ModelCycle
from point_forecast.domain.errors import DownloadError, FetchError, FetchFailedError, StagingError
from point_forecast.infrastructure.config import Settings
from point_forecast.infrastructure.cycle_resolver import resolve_cycle
from point_forecast.infrastructure.downloader import download_to_path, format_size
from point_forecast.infrastructure.filename_codec import encode_filename
from point_forecast.infrastructure.staging import StagingArea
from point_forecast.metrics.metrics import download_failures_total, fetch_cycles_total, record_download


logger = logging.getLogger(__name__)

DOWNLOADED = "downloaded"
REUSED = "reused"


class FetchOrchestrator:
    """Downloads every forecast hour of a cycle and publishes the set atomically.

    Files are fetched by a fixed-size worker pool into a staging directory
    next to the published one. The staging directory replaces the published
    directory only when every forecast hour succeeded; otherwise it is
    discarded and the previous data stays in place.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=settings.download_timeout_seconds,
            follow_redirects=True,
        )
        self._cancel = threading.Event()

    def __enter__(self) -> "FetchOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def cancel(self) -> None:
        """Stop workers from starting new downloads. Transfers in flight run to completion."""
        self._cancel.set()

    @property
    def published_dir(self) -> Path:
        return Path(self.settings.output_dir)

    def file_name(self, cycle: ModelCycle, forecast_hour: str) -> str:
        return encode_filename(
            cycle.hour,
            int(forecast_hour),
            product=self.settings.product,
            tier=self.settings.tier,
            resolution=self.settings.resolution,
        )

    def url_for(self, cycle: ModelCycle, file_name: str) -> str:
        base = self.settings.base_url.rstrip("/")
        return f"{base}/{self.settings.product}.{cycle.date_str}/{cycle.hour_str}/atmos/{file_name}"

    def run(self, cycle: Optional[ModelCycle] = None) -> FetchReport:
        """Download and publish one full cycle.

        Raises:
            FetchFailedError: one or more forecast hours failed after retries
            StagingError: the staging or published directory could not be managed
        """
        if cycle is None:
            cycle = resolve_cycle()
        self._cancel.clear()

        jobs = [DownloadJob(forecast_hour=hour) for hour in self.settings.forecast_hours]
        logger.info("Downloading %s forecast: %s %sZ", self.settings.product.upper(), cycle.date_str, cycle.hour_str)
        logger.info("Resolution: %s, forecast hours: %d", self.settings.resolution, len(jobs))

        with StagingArea(self.published_dir) as staging:
            with ThreadPoolExecutor(
                max_workers=max(1, self.settings.download_workers),
                thread_name_prefix="gfs-download",
            ) as executor:
                futures = [executor.submit(self._run_job, staging, cycle, job) for job in jobs]

            # The pool has joined here, results are collected in horizon order
            outcomes: Dict[str, str] = {}
            failed: List[str] = []
            staging_error: Optional[StagingError] = None
            for job, future in zip(jobs, futures):
                try:
                    outcomes[job.forecast_hour] = future.result()
                except StagingError as exc:
                    logger.error("Download failed: %s", exc)
                    failed.append(job.forecast_hour)
                    staging_error = staging_error or exc
                except FetchError as exc:
                    logger.error("Download failed: %s", exc)
                    failed.append(job.forecast_hour)

            if failed:
                download_failures_total.inc(len(failed))
                fetch_cycles_total.labels(outcome="failed").inc()
                logger.error("%d download(s) failed, keeping %s unchanged", len(failed), self.published_dir)
                raise FetchFailedError(failed) from staging_error

            staging.publish()

        fetch_cycles_total.labels(outcome="published").inc()
        logger.info("All downloads completed and moved to %s", self.published_dir)
        return FetchReport(
            cycle=cycle,
            published_dir=self.published_dir,
            downloaded=[h for h, outcome in outcomes.items() if outcome == DOWNLOADED],
            reused=[h for h, outcome in outcomes.items() if outcome == REUSED],
        )

    def _run_job(self, staging: StagingArea, cycle: ModelCycle, job: DownloadJob) -> str:
        hour = job.forecast_hour
        if self._cancel.is_set():
            raise DownloadError(f"{hour}h cancelled")

        file_name = self.file_name(cycle, hour)
        output_path = staging.file_path(file_name)
        if self._reuse_published(cycle, file_name, output_path, hour):
            return REUSED

        url = self.url_for(cycle, file_name)
        temp_path = staging.temp_path(file_name)
        max_retries = max(1, self.settings.max_retries)
        last_error: Optional[Exception] = None
        attempt = 0
        for attempt in range(1, max_retries + 1):
            logger.info("[%sh] Downloading (attempt %d/%d)...", hour, attempt, max_retries)
            try:
                size, elapsed_ms = download_to_path(self._client, url, temp_path)
            except StagingError:
                self._cancel.set()
                _remove_quietly(temp_path)
                raise
            except DownloadError as exc:
                last_error = exc
            else:
                if size > self.settings.min_file_bytes:
                    try:
                        os.rename(temp_path, output_path)
                    except OSError as exc:
                        self._cancel.set()
                        _remove_quietly(temp_path)
                        raise StagingError(f"failed to rename temp file: {exc}") from exc
                    record_download(elapsed_ms, size)
                    logger.info("✓ %sh complete (%s)", hour, format_size(size))
                    return DOWNLOADED
                last_error = DownloadError(f"file too small ({format_size(size)})")

            logger.warning("[%sh] Attempt %d/%d failed: %s", hour, attempt, max_retries, last_error)
            if attempt < max_retries and self._cancel.wait(self.settings.retry_delay_seconds):
                break

        _remove_quietly(temp_path)
        raise DownloadError(f"{hour}h failed after {attempt} attempts: {last_error}")

    def _reuse_published(self, cycle: ModelCycle, file_name: str, output_path: Path, hour: str) -> bool:
        # A published file only counts as complete for this cycle if it is
        # large enough and was written after the cycle started
        existing = self.published_dir / file_name
        try:
            info = existing.stat()
        except OSError:
            return False
        if info.st_size <= self.settings.min_file_bytes or info.st_mtime < cycle.start.timestamp():
            return False

        try:
            os.link(existing, output_path)
        except OSError:
            try:
                shutil.copy2(existing, output_path)
            except OSError as exc:
                self._cancel.set()
                raise StagingError(f"failed to copy {existing} into staging: {exc}") from exc
        logger.info("✓ %sh exists (%s)", hour, format_size(info.st_size))
        return True


def _remove_quietly(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)
