from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from valet.admin.date_range import calendar_day_bounds


def test_bounds_cover_whole_days():
    low, high = calendar_day_bounds("2030-01-01", "2030-01-31")

    assert low == datetime(2030, 1, 1, tzinfo=timezone.utc)
    assert high.date().isoformat() == "2030-01-31"
    assert (high.hour, high.minute, high.second) == (23, 59, 59)


def test_same_day_range_includes_late_evening():
    low, high = calendar_day_bounds("2030-01-07", "2030-01-07")

    assert low <= datetime(2030, 1, 7, 23, 30, tzinfo=timezone.utc) <= high


def test_missing_bounds_stay_open():
    assert calendar_day_bounds(None, None) == (None, None)
    assert calendar_day_bounds("", "  ") == (None, None)


def test_bounds_use_configured_zone():
    low, _ = calendar_day_bounds("2030-06-01", None, "America/New_York")

    assert low.tzinfo == ZoneInfo("America/New_York")
    assert low.astimezone(timezone.utc).hour == 4


@pytest.mark.parametrize(
    "start,end,zone",
    [("2030-13-01", None, "UTC"), (None, "yesterday", "UTC"), ("2030-01-01", None, "Mars/Olympus")],
)
def test_malformed_input_raises_value_error(start, end, zone):
    with pytest.raises(ValueError):
        calendar_day_bounds(start, end, zone)
