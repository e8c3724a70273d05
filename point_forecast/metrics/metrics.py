from fastapi import APIRouter, FastAPI
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response


metrics_router = APIRouter()

# Download cycle
file_download_seconds = Histogram(
    "file_download_seconds", "Time spent downloading a grid file in seconds"
)
file_size_bytes = Gauge("file_size_bytes", "Size of the last downloaded grid file in bytes")
network_bytes_total = Counter(
    "network_bytes_total", "Total network bytes downloaded by the service"
)
download_failures_total = Counter(
    "download_failures_total", "Forecast hours that failed after all retries"
)
fetch_cycles_total = Counter(
    "fetch_cycles_total", "Completed download cycles by outcome", ["outcome"]
)

# Extraction
extract_seconds = Histogram("extract_seconds", "Time spent extracting point values from one grid file in seconds")
decode_failures_total = Counter("decode_failures_total", "Grid files skipped because decoding failed")


def record_download(download_ms: int, file_size: int) -> None:
    """
    Update download metrics for one successfully fetched file.

    Args:
        download_ms (int): Time taken to download the file in milliseconds
        file_size (int): Size of the downloaded file in bytes
    """
    file_download_seconds.observe(download_ms / 1000.0)
    file_size_bytes.set(file_size)
    network_bytes_total.inc(file_size)


@metrics_router.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def setup_metrics(app: FastAPI, enabled: bool = True) -> None:
    """
    Expose the Prometheus endpoint when metrics are enabled.
    Metrics themselves are updated directly by the services.
    """
    if enabled:
        app.include_router(metrics_router)
