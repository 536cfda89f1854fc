from datetime import datetime, timedelta, timezone

import pytest

from tripplanner.services.time_formatters import (
    as_utc,
    convert_to_12_hour,
    convert_to_24_hour,
    format_duration,
    is_valid_time_24,
    parse_duration,
    time_sort_key,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2:30 PM", "14:30"),
        ("12:00 AM", "00:00"),
        ("12:00 PM", "12:00"),
        ("12:45 am", "00:45"),
        ("11:59 PM", "23:59"),
        ("1:05pm", "13:05"),
        ("09:00", "09:00"),
        ("9:00", "09:00"),
        ("18:00", "18:00"),
        (" 7:15 ", "07:15"),
    ],
)
def test_convert_to_24_hour(value, expected):
    assert convert_to_24_hour(value) == expected


@pytest.mark.parametrize(
    "value",
    [f"{h}:{m:02d} {p}" for h in range(1, 13) for m in (0, 30, 59) for p in ("AM", "PM", "am")]
    + [f"{h:02d}:{m:02d}" for h in range(0, 24) for m in (0, 15, 45)]
    + [f"{h}:{m:02d}" for h in range(0, 10) for m in (0, 30)],
)
def test_convert_to_24_hour_is_idempotent(value):
    once = convert_to_24_hour(value)
    assert convert_to_24_hour(once) == once
    assert is_valid_time_24(once)


def test_convert_to_24_hour_leaves_unparseable_input():
    assert convert_to_24_hour("noon PM") == "noon PM"
    assert convert_to_24_hour("TBD") == "TBD"
    assert convert_to_24_hour("Noon") == "Noon"
    assert convert_to_24_hour(" evening ") == "evening"
    assert convert_to_24_hour("930") == "930"
    assert convert_to_24_hour("") == ""


@pytest.mark.parametrize(
    "value, expected",
    [("14:30", "2:30 PM"), ("00:00", "12:00 AM"), ("12:05", "12:05 PM"), ("09:00", "9:00 AM"), ("later", "later")],
)
def test_convert_to_12_hour(value, expected):
    assert convert_to_12_hour(value) == expected


@pytest.mark.parametrize("minutes, expected", [(45, "45 min"), (60, "1h"), (150, "2h 30min"), (0, "0 min")])
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected


def test_parse_duration():
    assert parse_duration("60 min") == 60
    assert parse_duration("2 hours") == 2
    assert parse_duration("a while") is None
    assert parse_duration("") is None


def test_is_valid_time_24():
    assert is_valid_time_24("00:00")
    assert is_valid_time_24("23:59")
    assert not is_valid_time_24("24:00")
    assert not is_valid_time_24("9:00")
    assert not is_valid_time_24("")


def test_time_sort_key_puts_untimed_last():
    times = ["18:00", None, "9:00 AM", "", "07:30"]
    ordered = sorted(times, key=time_sort_key)
    assert ordered[:3] == ["07:30", "9:00 AM", "18:00"]
    assert set(ordered[3:]) == {None, ""}


def test_time_sort_key_puts_free_text_after_clock_times():
    times = [None, "TBD", "20:00", "8:15 AM"]
    assert sorted(times, key=time_sort_key) == ["8:15 AM", "20:00", "TBD", None]


def test_as_utc():
    naive = datetime(2026, 6, 15, 9, 0)
    assert as_utc(naive) == datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)

    warsaw = datetime(2026, 6, 15, 11, 0, tzinfo=timezone(timedelta(hours=2)))
    converted = as_utc(warsaw)
    assert converted.hour == 9
    assert converted.tzinfo == timezone.utc
