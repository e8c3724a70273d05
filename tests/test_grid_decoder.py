import subprocess

import pytest

from point_forecast.domain.errors import DecodeError, DecoderUnavailableError
from point_forecast.infrastructure.grid_decoder import MATCH_EXPRESSION, Wgrib2Decoder, parse_output


def _line(n: int, tag: str, value: str) -> str:
    return f"{n}:{n * 1000}:d=2024050100:{tag}:anl:lon=115.744000,lat=-32.304000,val={value}"


# The order GFS pgrb2 files emit these records in
WGRIB2_OUTPUT = "\n".join(
    [
        _line(1, "GUST:surface", "5"),
        _line(2, "TMP:2 m above ground", "293.15"),
        _line(3, "UGRD:10 m above ground", "2"),
        _line(4, "VGRD:10 m above ground", "-2"),
    ]
)


def _runner(stdout: str = WGRIB2_OUTPUT, returncode: int = 0, stderr: str = ""):
    calls = []

    def run(args, timeout):
        calls.append((args, timeout))
        return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)

    run.calls = calls
    return run


def test_extract_parses_fields_by_name():
    runner = _runner()
    decoder = Wgrib2Decoder(runner=runner)

    sample = decoder.extract("gfs.t00z.pgrb2.0p25.f000", 115.744, -32.304)

    assert sample.gust_ms == 5.0
    assert sample.temperature_k == 293.15
    assert sample.u_wind_ms == 2.0
    assert sample.v_wind_ms == -2.0


def test_field_order_does_not_matter():
    shuffled = "\n".join(reversed(WGRIB2_OUTPUT.splitlines()))
    assert parse_output(shuffled) == parse_output(WGRIB2_OUTPUT)


def test_command_requests_four_fields_at_point():
    runner = _runner()
    decoder = Wgrib2Decoder(executable="/opt/bin/wgrib2", timeout_seconds=12, runner=runner)

    decoder.extract("gfs.t00z.pgrb2.0p25.f000", 115.7441, -32.3039)

    args, timeout = runner.calls[0]
    assert args == [
        "/opt/bin/wgrib2",
        "gfs.t00z.pgrb2.0p25.f000",
        "-s",
        "-match",
        MATCH_EXPRESSION,
        "-lon",
        "115.744",
        "-32.304",
    ]
    assert timeout == 12
    for tag in ("TMP:2 m above ground", "UGRD:10 m above ground", "VGRD:10 m above ground", "GUST:surface"):
        assert tag in MATCH_EXPRESSION


def test_insufficient_output_is_decode_error():
    partial = "\n".join(WGRIB2_OUTPUT.splitlines()[:3])
    with pytest.raises(DecodeError, match="insufficient data"):
        parse_output(partial)
    with pytest.raises(DecodeError):
        parse_output("")


def test_non_numeric_value_is_decode_error():
    bad = WGRIB2_OUTPUT.replace("val=293.15", "val=abc")
    with pytest.raises(DecodeError, match="temperature_k"):
        parse_output(bad)


@pytest.mark.parametrize("value", ["nan", "inf", "-inf", "9.999e+20"])
def test_non_finite_or_undefined_value_is_decode_error(value):
    bad = WGRIB2_OUTPUT.replace("val=5", f"val={value}")
    with pytest.raises(DecodeError):
        parse_output(bad)


def test_duplicate_field_is_decode_error():
    doubled = WGRIB2_OUTPUT + "\n" + _line(5, "GUST:surface", "6")
    with pytest.raises(DecodeError, match="duplicate"):
        parse_output(doubled)


def test_unrelated_lines_are_ignored():
    noisy = WGRIB2_OUTPUT + "\n" + _line(5, "PRMSL:mean sea level", "101325")
    assert parse_output(noisy)["gust_ms"] == 5.0


def test_nonzero_exit_is_decode_error():
    decoder = Wgrib2Decoder(runner=_runner(stdout="", returncode=8, stderr="*** FATAL ERROR: missing file"))
    with pytest.raises(DecodeError, match="status 8"):
        decoder.extract("missing.grib2", 0.0, 0.0)


def test_timeout_is_decode_error():
    def run(args, timeout):
        raise subprocess.TimeoutExpired(args, timeout)

    decoder = Wgrib2Decoder(timeout_seconds=1, runner=run)
    with pytest.raises(DecodeError, match="timed out"):
        decoder.extract("slow.grib2", 0.0, 0.0)


def test_missing_executable_when_running_is_decode_error():
    def run(args, timeout):
        raise FileNotFoundError(2, "No such file or directory", args[0])

    decoder = Wgrib2Decoder(runner=run)
    with pytest.raises(DecodeError, match="error starting wgrib2"):
        decoder.extract("gfs.t00z.pgrb2.0p25.f000", 0.0, 0.0)


def test_ensure_available_reports_missing_tool():
    decoder = Wgrib2Decoder(executable="wgrib2-definitely-not-installed")
    with pytest.raises(DecoderUnavailableError):
        decoder.ensure_available()
