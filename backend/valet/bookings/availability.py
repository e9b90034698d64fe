from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from valet.bookings.store import ensure_aware, fetch_active_bookings_in_window
from valet.db.models import ACTIVE_BOOKING_STATUSES
from valet.errors import ValidationFailedError
from valet.schedules.store import find_schedule_for_day, get_location_schedules, time_to_minutes


logger = logging.getLogger("valet.bookings.availability")


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open [start, end) comparison; abutting intervals do not overlap."""
    return a_start < b_end and a_end > b_start


def find_overlapping_bookings(
    existing_bookings: list[Any],
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: int | None = None,
) -> list[Any]:
    start_time = ensure_aware(start_time)
    end_time = ensure_aware(end_time)
    overlapping = []
    for booking in existing_bookings:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if str(getattr(booking, "status", "") or "") not in ACTIVE_BOOKING_STATUSES:
            continue
        booking_start = getattr(booking, "start_time", None)
        booking_end = getattr(booking, "end_time", None)
        if not isinstance(booking_start, datetime) or not isinstance(booking_end, datetime):
            continue
        if intervals_overlap(ensure_aware(booking_start), ensure_aware(booking_end), start_time, end_time):
            overlapping.append(booking)
    return overlapping


def check_overlap(
    db: Session,
    location_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: int | None = None,
) -> bool:
    """Return True when [start_time, end_time) is already taken at the location."""
    if ensure_aware(end_time) <= ensure_aware(start_time):
        raise ValidationFailedError("End time must be after start time")

    existing = [
        booking
        for booking in fetch_active_bookings_in_window(db, location_id, start_time, end_time)
        if booking.location_id == location_id
    ]
    return bool(find_overlapping_bookings(existing, start_time, end_time, exclude_booking_id))


def fits_operating_hours(
    db: Session,
    location_id: int,
    start_time: datetime,
    end_time: datetime,
    timezone_name: str = "UTC",
) -> bool:
    """Locations without any schedule rows accept bookings at any time."""
    if not get_location_schedules(db, location_id, active_only=False):
        return True

    tzinfo = _safe_zoneinfo(timezone_name)
    if tzinfo is None:
        logger.warning("Unknown calendar timezone %r; using UTC", timezone_name)
        tzinfo = timezone.utc
    local_start = ensure_aware(start_time).astimezone(tzinfo)
    local_end = ensure_aware(end_time).astimezone(tzinfo)
    if local_end.date() != local_start.date():
        return False

    # isoweekday: Monday=1..Sunday=7; schedules use Sunday=0.
    day_of_week = local_start.isoweekday() % 7
    schedule = find_schedule_for_day(db, location_id, day_of_week)
    if schedule is None:
        return False

    open_minutes = time_to_minutes(schedule.start_time)
    close_minutes = time_to_minutes(schedule.end_time)
    if open_minutes is None or close_minutes is None:
        return False

    start_minutes = local_start.hour * 60 + local_start.minute
    end_minutes = local_end.hour * 60 + local_end.minute + (
        1 if local_end.second or local_end.microsecond else 0
    )
    return open_minutes <= start_minutes and end_minutes <= close_minutes


def _safe_zoneinfo(name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
