import asyncio
import logging
from typing import Callable

from point_forecast.domain.dto import FetchReport
from point_forecast.infrastructure.config import Settings
from point_forecast.services.fetch_service import FetchOrchestrator


logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 30


def _run_then_close(orchestrator: FetchOrchestrator) -> FetchReport:
    # Closing in the worker thread keeps the client open until the cycle returns
    try:
        return orchestrator.run()
    finally:
        orchestrator.close()


async def run_refresh_loop(settings: Settings, orchestrator_factory: Callable[[], FetchOrchestrator]) -> None:
    """Refresh the published directory forever, one download cycle per interval.

    Failed cycles are logged and retried with exponential backoff. Shutdown
    via task cancel is handled gracefully: a cycle already running in the
    worker thread stops picking up new downloads, lets in-flight transfers
    finish and then releases its HTTP client.
    """
    interval_seconds = settings.refresh_interval_minutes * 60
    backoff_seconds = 1
    while True:
        orchestrator = orchestrator_factory()
        try:
            report = await asyncio.to_thread(_run_then_close, orchestrator)
            logger.info(
                "Refreshed %s: %d downloaded, %d reused",
                report.published_dir,
                len(report.downloaded),
                len(report.reused),
            )
            # Reset backoff after a successful cycle
            backoff_seconds = 1
            delay = interval_seconds
        except asyncio.CancelledError:
            orchestrator.cancel()
            raise
        except Exception as exc:
            logger.error("Refresh cycle failed: %s", exc, exc_info=True)
            delay = backoff_seconds
            backoff_seconds = min(backoff_seconds * 2, MAX_BACKOFF_SECONDS)

        await asyncio.sleep(delay)
