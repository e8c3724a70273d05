from __future__ import annotations

import logging
import math
import re
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from point_forecast.domain.dto import FieldSample
from point_forecast.domain.errors import DecodeError, DecoderUnavailableError


logger = logging.getLogger(__name__)

# FieldSample attribute -> wgrib2 inventory tag
FIELDS: Tuple[Tuple[str, str], ...] = (
    ("temperature_k", "TMP:2 m above ground"),
    ("u_wind_ms", "UGRD:10 m above ground"),
    ("v_wind_ms", "VGRD:10 m above ground"),
    ("gust_ms", "GUST:surface"),
)

MATCH_EXPRESSION = ":(" + "|".join(tag for _, tag in FIELDS) + "):"

# wgrib2 reports points outside the grid or masked out with this value
UNDEFINED_VALUE = 9.999e20

_VALUE_RE = re.compile(r"val=([^\s,:]+)")

Runner = Callable[[List[str], float], subprocess.CompletedProcess]


def _run_subprocess(args: List[str], timeout: float) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, text=True, timeout=timeout)


def parse_output(output: str) -> Dict[str, float]:
    """Parse `wgrib2 -s -lon` output into a field-keyed mapping.

    Each inventory line carries its own variable/level tag, so the order in
    which the decoder emits records does not matter.
    """
    values: Dict[str, float] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        field = next((name for name, tag in FIELDS if f":{tag}:" in line), None)
        if field is None:
            logger.debug("Ignoring unexpected decoder line: %s", line)
            continue
        if field in values:
            raise DecodeError(f"duplicate value for {field}")
        m = _VALUE_RE.search(line)
        if m is None:
            raise DecodeError(f"no value token for {field}: {line!r}")
        try:
            value = float(m.group(1))
        except ValueError as exc:
            raise DecodeError(f"error parsing {field}: {m.group(1)!r}") from exc
        if not math.isfinite(value) or abs(value) >= UNDEFINED_VALUE:
            raise DecodeError(f"undefined value for {field}: {m.group(1)}")
        values[field] = value

    missing = [name for name, _ in FIELDS if name not in values]
    if missing:
        raise DecodeError(f"insufficient data: got {len(values)} of {len(FIELDS)} fields, missing {', '.join(missing)}")
    return values


class Wgrib2Decoder:
    """Point-value extractor backed by the external `wgrib2` tool."""

    def __init__(self, executable: str = "wgrib2", timeout_seconds: float = 60, runner: Optional[Runner] = None) -> None:
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self._runner = runner or _run_subprocess

    def ensure_available(self) -> None:
        if shutil.which(self.executable) is None:
            raise DecoderUnavailableError(f"{self.executable} must be installed")

    def command(self, path: Path, lon: float, lat: float) -> List[str]:
        return [
            self.executable,
            str(path),
            "-s",
            "-match",
            MATCH_EXPRESSION,
            "-lon",
            f"{lon:.3f}",
            f"{lat:.3f}",
        ]

    def extract(self, path: Path, lon: float, lat: float) -> FieldSample:
        """Decode 2 m temperature, 10 m wind components and surface gust at one point."""
        args = self.command(path, lon, lat)
        try:
            proc = self._runner(args, self.timeout_seconds)
        except subprocess.TimeoutExpired as exc:
            raise DecodeError(f"wgrib2 timed out after {self.timeout_seconds}s on {path}") from exc
        except OSError as exc:
            raise DecodeError(f"error starting wgrib2: {exc}") from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise DecodeError(f"wgrib2 exited with status {proc.returncode} on {path}: {stderr}")

        values = parse_output(proc.stdout or "")
        try:
            return FieldSample(**values)
        except ValidationError as exc:
            raise DecodeError(f"invalid sample from {path}: {exc}") from exc
