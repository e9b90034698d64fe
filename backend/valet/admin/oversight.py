from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from valet.admin.date_range import calendar_day_bounds
from valet.bookings import lifecycle
from valet.bookings.store import ensure_aware
from valet.config import CALENDAR_TIMEZONE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from valet.db.models import Booking, Schedule
from valet.errors import InvalidTransitionError
from valet.schedules.store import time_to_minutes


logger = logging.getLogger("valet.admin")

SORTABLE_FIELDS = ("start_time", "end_time", "created_at", "price", "status")


class BookingFilters(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    location_id: int | None = None
    user_id: int | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort_by: str = "start_time"
    sort_order: str = "desc"


def parse_booking_filters(raw_filters: dict[str, Any]) -> BookingFilters:
    return BookingFilters.model_validate(raw_filters)


def get_all_bookings(db: Session, filters: BookingFilters) -> dict[str, Any]:
    try:
        low, high = calendar_day_bounds(filters.start_date, filters.end_date, CALENDAR_TIMEZONE)
    except ValueError:
        logger.info(
            "Ignoring malformed booking date range start=%s end=%s",
            filters.start_date,
            filters.end_date,
        )
        return _page([], filters)

    status = filters.status.strip().upper() if filters.status and filters.status.strip() else None
    matches = []
    for booking in db.query(Booking).all():
        if status is not None and booking.status != status:
            continue
        if filters.location_id is not None and booking.location_id != filters.location_id:
            continue
        if filters.user_id is not None and booking.user_id != filters.user_id:
            continue
        start = ensure_aware(booking.start_time)
        if low is not None and start < low:
            continue
        if high is not None and start > high:
            continue
        matches.append(booking)

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_FIELDS else "start_time"
    matches.sort(key=lambda b: _sort_key(b, sort_by), reverse=filters.sort_order != "asc")
    return _page(matches, filters)


def get_all_schedules(db: Session) -> list[Schedule]:
    return sorted(
        db.query(Schedule).all(),
        key=lambda s: (s.location_id, s.day_of_week, time_to_minutes(s.start_time) or 0),
    )


def update_booking_status(db: Session, booking_id: int, new_status: str) -> Booking:
    booking = lifecycle.get_booking(db, booking_id)
    if booking.status == new_status:
        raise InvalidTransitionError(
            f"Booking is already {booking.status}; "
            f"cannot transition from {booking.status} to {new_status}"
        )
    return lifecycle.update_booking_status(db, booking_id, new_status)


def delete_booking(db: Session, booking_id: int) -> None:
    lifecycle.delete_booking(db, booking_id)


def _sort_key(booking: Booking, sort_by: str) -> Any:
    value = getattr(booking, sort_by, None)
    if isinstance(value, datetime):
        return ensure_aware(value)
    if value is None:
        return ensure_aware(booking.start_time)
    return value


def _page(rows: list[Booking], filters: BookingFilters) -> dict[str, Any]:
    offset = (filters.page - 1) * filters.limit
    return {
        "bookings": rows[offset : offset + filters.limit],
        "pagination": {
            "current_page": filters.page,
            "total_pages": math.ceil(len(rows) / filters.limit),
            "total_items": len(rows),
            "items_per_page": filters.limit,
        },
    }
