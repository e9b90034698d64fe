from __future__ import annotations

from datetime import date, datetime, time as dt_time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def calendar_day_bounds(
    start_date: str | None,
    end_date: str | None,
    timezone_name: str = "UTC",
) -> tuple[datetime | None, datetime | None]:
    """Expand inclusive YYYY-MM-DD bounds to the first and last instant of each day.

    Raises ValueError on malformed dates or an unknown zone.
    """
    try:
        tzinfo = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {timezone_name}") from exc

    low = _parse_day(start_date)
    high = _parse_day(end_date)
    return (
        datetime.combine(low, dt_time.min, tzinfo=tzinfo) if low else None,
        datetime.combine(high, dt_time.max, tzinfo=tzinfo) if high else None,
    )


def _parse_day(value: str | None) -> date | None:
    if value is None or not value.strip():
        return None
    return date.fromisoformat(value.strip())
