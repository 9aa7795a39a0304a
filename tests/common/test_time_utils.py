from datetime import time, timedelta

import pytest

from src.music_school.music_school.common.time_utils import (
    add_minutes,
    crosses_lunch,
    duration_minutes,
    floor_to_hour,
    floor_to_quarter,
    normalize_hhmm,
    ranges_overlap,
    round_to_quarter,
    to_hhmm,
    to_minutes,
)


def test_minutes_round_trip_and_add():
    assert to_minutes("09:30") == 570
    assert to_hhmm(570) == "09:30"
    assert add_minutes("10:45", 30) == "11:15"


def test_touching_ranges_do_not_overlap():
    assert not ranges_overlap("10:00", "11:00", "11:00", "12:00")
    assert ranges_overlap("10:00", "11:00", "10:30", "11:30")
    assert ranges_overlap("10:00", "12:00", "10:30", "11:00")


def test_crosses_lunch_only_when_strictly_inside():
    assert crosses_lunch("11:30", "12:30")
    assert not crosses_lunch("11:00", "12:00")
    assert not crosses_lunch("13:00", "14:00")


def test_quarter_rounding():
    assert round_to_quarter("10:07") == "10:00"
    assert round_to_quarter("10:08") == "10:15"
    assert floor_to_quarter("10:14") == "10:00"
    assert floor_to_hour("10:59") == "10:00"


def test_duration_defaults_to_one_hour_without_end():
    assert duration_minutes("10:00", None) == 60
    assert duration_minutes("10:00", "10:45") == 45


@pytest.mark.parametrize(
    "value, expected",
    [
        (time(9, 5), "09:05"),
        (timedelta(hours=14, minutes=30), "14:30"),
        ("8:00:00", "08:00"),
        (None, None),
    ],
)
def test_normalize_mysql_time_values(value, expected):
    assert normalize_hhmm(value) == expected


def test_normalize_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_hhmm("noon")
