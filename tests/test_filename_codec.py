from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from point_forecast.domain.dto import ModelCycle
from point_forecast.infrastructure.filename_codec import (
    INVALID_HOUR,
    cycle_hour,
    cycle_timestamp,
    encode_filename,
    forecast_hour,
    glob_pattern,
)


def test_encode_filename_layout():
    assert encode_filename(0, 3) == "gfs.t00z.pgrb2.0p25.f003"
    assert encode_filename(18, 120, resolution="0p50") == "gfs.t18z.pgrb2.0p50.f120"


def test_codec_matches_its_own_encoding():
    for cycle in (0, 6, 12, 18):
        for offset in list(range(0, 25)) + [120, 240, 384]:
            name = encode_filename(cycle, offset)
            assert forecast_hour(name) == offset
            assert cycle_hour(name) == cycle


def test_forecast_hour_accepts_paths():
    assert forecast_hour("/data/gfs_data/gfs.t06z.pgrb2.0p25.f012") == 12
    assert forecast_hour(Path("gfs_data") / "gfs.t12z.pgrb2.0p25.f001") == 1


@pytest.mark.parametrize(
    "name",
    [
        "",
        "gfs",
        "README.md",
        "gfs.t00z.pgrb2.0p25",
        "gfs.t00z.pgrb2.0p25.f",
        "gfs.t00z.pgrb2.0p25.fabc",
        "gfs.t00z.pgrb2.0p25.f003.tmp",
        "gfs.t0z.pgrb2.0p25.f003",
        "gfs.t00z.pgrb2.0p25.f-01",
        "gfs.t00z.pgrb2.0p25.f0030x",
    ],
)
def test_malformed_names_return_sentinel(name):
    assert forecast_hour(name) == INVALID_HOUR
    assert cycle_hour(name) == INVALID_HOUR


def test_codec_is_total_for_odd_input():
    assert forecast_hour(None) == INVALID_HOUR
    assert forecast_hour("gfs.t00z.pgrb2.0p25.f\x00") == INVALID_HOUR


def test_cycle_hour_out_of_range_is_rejected():
    name = "gfs.t99z.pgrb2.0p25.f003"
    assert cycle_hour(name) == INVALID_HOUR


def test_encode_rejects_invalid_input():
    with pytest.raises(ValueError):
        encode_filename(24, 0)
    with pytest.raises(ValueError):
        encode_filename(0, -1)


def test_cycle_timestamp_adds_offset():
    cycle = ModelCycle(cycle_date=date(2024, 5, 1), hour=18)
    assert cycle_timestamp(cycle, 0) == datetime(2024, 5, 1, 18, tzinfo=timezone.utc)
    assert cycle_timestamp(cycle, 7) == datetime(2024, 5, 2, 1, tzinfo=timezone.utc)


def test_glob_pattern_matches_encoded_names():
    from fnmatch import fnmatch

    assert fnmatch(encode_filename(6, 9), glob_pattern())
    assert not fnmatch("gfs.t06z.pgrb2.1p00.f009", glob_pattern())
