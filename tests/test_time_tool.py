import pytest

from modules.tool_usage.time_tool import (
    InvalidTimeFormatError,
    add_minutes,
    location_total_minutes,
    optional_minutes,
    to_clock,
    to_minutes,
)


@pytest.mark.parametrize("clock,expected", [
    ("00:00", 0),
    ("08:30", 510),
    ("9:05", 545),
    ("23:59", 1439),
    (" 12:00 ", 720),
])
def test_to_minutes_parses_clock_strings(clock, expected):
    assert to_minutes(clock) == expected


@pytest.mark.parametrize("bad", ["24:00", "12:60", "abc", "12-30", "", "1:2", None, 930])
def test_to_minutes_rejects_malformed_input(bad):
    with pytest.raises(InvalidTimeFormatError) as exc:
        to_minutes(bad)
    assert "ERROR_INVALID_TIME_FORMAT" in str(exc.value)


def test_invalid_time_is_a_value_error():
    with pytest.raises(ValueError):
        to_minutes("25:00")


def test_to_clock_formats_and_wraps():
    assert to_clock(0) == "00:00"
    assert to_clock(545) == "09:05"
    assert to_clock(1439) == "23:59"
    assert to_clock(1440) == "00:00"
    assert to_clock(1500) == "01:00"


def test_to_clock_rejects_negative_minutes():
    with pytest.raises(ValueError):
        to_clock(-1)


def test_add_minutes():
    assert add_minutes("09:00", 90) == "10:30"
    assert add_minutes("09:00", 0) == "09:00"


def test_optional_minutes_passes_blank_through():
    assert optional_minutes(None) is None
    assert optional_minutes("") is None
    assert optional_minutes("01:00") == 60


def test_location_total_minutes_sums_buffers_and_shooting(make_location):
    loc = make_location("a", shooting_duration=60, buffer_before=15, buffer_after=20)
    assert location_total_minutes(loc) == 95


@pytest.mark.parametrize("field", ["shooting_duration", "buffer_before", "buffer_after"])
def test_location_total_minutes_is_monotonic(make_location, field):
    base = {"shooting_duration": 30, "buffer_before": 5, "buffer_after": 5}
    totals = []
    for bump in range(0, 50, 10):
        kw = dict(base)
        kw[field] += bump
        totals.append(location_total_minutes(make_location("a", **kw)))
    assert totals == sorted(totals)
