from datetime import date, datetime, time, timezone, timedelta

import pytest

from gymsched.core.timezone_utils import (
    combine_local_to_utc,
    convert_utc_to_local,
    ensure_utc,
    local_wall_clock,
    parse_schedule_date,
    parse_wall_clock,
)


def test_combine_local_to_utc_with_dst():
    # 1 de julio de 2025: EDT es UTC-4
    utc_dt = combine_local_to_utc(date(2025, 7, 1), time(10, 0), "America/New_York")
    assert utc_dt.tzinfo == timezone.utc
    assert utc_dt.hour == 14 and utc_dt.minute == 0

    # 10 de enero: EST es UTC-5
    winter = combine_local_to_utc(date(2030, 1, 10), time(10, 0), "America/New_York")
    assert winter.hour == 15


def test_local_wall_clock_round_trip():
    utc_dt = combine_local_to_utc(date(2030, 1, 10), time(7, 30), "Europe/Madrid")
    assert local_wall_clock(utc_dt, "Europe/Madrid") == "07:30"
    assert convert_utc_to_local(utc_dt, "Europe/Madrid").hour == 7


def test_ensure_utc_accepts_naive_and_aware():
    naive = datetime(2030, 1, 10, 9, 0)
    assert ensure_utc(naive) == datetime(2030, 1, 10, 9, 0, tzinfo=timezone.utc)
    aware = datetime(2030, 1, 10, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ensure_utc(aware).hour == 9
    assert ensure_utc(None) is None


@pytest.mark.parametrize("value", ["2030-1-10", "10/01/2030", "2030-13-01", "", None])
def test_parse_schedule_date_rejects_bad_input(value):
    with pytest.raises(ValueError):
        parse_schedule_date(value)


@pytest.mark.parametrize("value", ["9:00", "25:00", "09:60", "0900"])
def test_parse_wall_clock_rejects_bad_input(value):
    with pytest.raises(ValueError):
        parse_wall_clock(value)


def test_parse_valid_values():
    assert parse_schedule_date("2030-01-10") == date(2030, 1, 10)
    assert parse_wall_clock("18:45") == time(18, 45)
