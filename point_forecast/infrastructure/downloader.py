import time
from pathlib import Path
from typing import Tuple

import httpx

from point_forecast.domain.errors import DownloadError, StagingError


def download_to_path(client: httpx.Client, url: str, dest: Path) -> Tuple[int, int]:
    """Stream a file to `dest` and return (size_bytes, elapsed_ms) tuple.

    Network failures and non-200 responses raise DownloadError, local file
    errors raise StagingError. A partial file may be left at `dest`.
    """
    start = time.perf_counter()
    try:
        f = open(dest, "wb")
    except OSError as exc:
        raise StagingError(f"creating output file {dest}: {exc}") from exc

    size = 0
    with f:
        try:
            with client.stream("GET", url) as r:
                if r.status_code != httpx.codes.OK:
                    raise DownloadError(f"unexpected status code: {r.status_code}")
                for chunk in r.iter_bytes():
                    f.write(chunk)
                    size += len(chunk)
        except httpx.HTTPError as exc:
            raise DownloadError(f"making request: {exc}") from exc
        except OSError as exc:
            raise StagingError(f"writing {dest}: {exc}") from exc

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    return size, elapsed_ms


def format_size(num_bytes: int) -> str:
    """Human-readable binary size, e.g. 1536 -> "1.5 KB"."""
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"
    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{num_bytes / div:.1f} {'KMGTPE'[exp]}B"
