"""Command line entry point: download a cycle, print a point forecast, or serve the API."""

import argparse
import logging
import sys
from datetime import datetime
from typing import List, Optional

from point_forecast.domain.dto import ModelCycle
from point_forecast.domain.errors import DecoderUnavailableError, EngineError, FetchError
from point_forecast.infrastructure.service_provider import get_fetch_orchestrator, get_forecast_service, get_settings
from point_forecast.services.forecast_service import format_table


logger = logging.getLogger("point_forecast.cli")


def _parse_cycle(raw: str) -> ModelCycle:
    """Parse a cycle given as YYYYMMDDHH, e.g. 2024050100."""
    try:
        parsed = datetime.strptime(raw, "%Y%m%d%H")
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYYMMDDHH, got {raw!r}") from exc
    if parsed.hour not in (0, 6, 12, 18):
        raise argparse.ArgumentTypeError(f"cycle hour must be 00, 06, 12 or 18, got {parsed.hour:02d}")
    return ModelCycle(cycle_date=parsed.date(), hour=parsed.hour)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="point-forecast", description="GFS point forecast service.")
    sub = parser.add_subparsers(dest="command", required=True)

    download = sub.add_parser("download", help="Download and publish one full forecast cycle.")
    download.add_argument("--cycle", type=_parse_cycle, default=None, help="Cycle as YYYYMMDDHH (default: latest available).")

    forecast = sub.add_parser("forecast", help="Print the forecast for a coordinate from the published files.")
    forecast.add_argument("--lon", type=float, required=True, help="Longitude in decimal degrees.")
    forecast.add_argument("--lat", type=float, required=True, help="Latitude in decimal degrees.")
    forecast.add_argument("--cycle", type=_parse_cycle, default=None, help="Cycle of the published files as YYYYMMDDHH.")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    return parser


def _download(args: argparse.Namespace) -> int:
    with get_fetch_orchestrator() as orchestrator:
        try:
            report = orchestrator.run(args.cycle)
        except FetchError as exc:
            logger.error("Error: %s", exc)
            return 1
    logger.info("Published %s: %d downloaded, %d reused", report.published_dir, len(report.downloaded), len(report.reused))
    return 0


def _forecast(args: argparse.Namespace) -> int:
    service = get_forecast_service()
    try:
        points = service.forecast(args.lon, args.lat, cycle=args.cycle)
    except (EngineError, DecoderUnavailableError) as exc:
        logger.error("Error: %s", exc)
        return 1
    print(format_table(points, args.lon, args.lat))
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("point_forecast.main:app", host=args.host, port=args.port, log_level=get_settings().log_level.lower())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    handlers = {"download": _download, "forecast": _forecast, "serve": _serve}
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
