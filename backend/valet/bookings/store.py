from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from valet.db.integrity import commit_or_raise_duplicate
from valet.db.models import ACTIVE_BOOKING_STATUSES, BOOKING_OVERLAP_CONSTRAINT, Booking


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def find_booking(db: Session, booking_id: int) -> Booking | None:
    for booking in db.query(Booking).all():
        if booking.id == booking_id:
            return booking
    return None


def fetch_active_bookings_in_window(
    db: Session,
    location_id: int,
    window_start: datetime,
    window_end: datetime,
) -> list[Booking]:
    return (
        db.query(Booking)
        .filter(Booking.location_id == location_id)
        .filter(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
        .filter(Booking.end_time > window_start)
        .filter(Booking.start_time < window_end)
        .all()
    )


def insert_booking(db: Session, booking: Booking) -> Booking:
    db.add(booking)
    commit_or_raise_duplicate(db, known_constraints=(BOOKING_OVERLAP_CONSTRAINT,))
    return booking


def save_booking(db: Session) -> None:
    commit_or_raise_duplicate(db, known_constraints=(BOOKING_OVERLAP_CONSTRAINT,))


def remove_booking(db: Session, booking: Booking) -> None:
    db.delete(booking)
    db.commit()


def list_user_bookings(db: Session, user_id: int, page: int = 1, limit: int = 10) -> list[Booking]:
    page = max(page, 1)
    rows = [b for b in db.query(Booking).filter(Booking.user_id == user_id).all() if b.user_id == user_id]
    rows.sort(key=lambda b: ensure_aware(b.created_at or b.start_time), reverse=True)
    offset = (page - 1) * limit
    return rows[offset : offset + limit]


def list_location_bookings(
    db: Session,
    location_id: int,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[Booking]:
    rows = []
    for booking in db.query(Booking).filter(Booking.location_id == location_id).all():
        if booking.location_id != location_id:
            continue
        start = ensure_aware(booking.start_time)
        if start_date is not None and start < ensure_aware(start_date):
            continue
        if end_date is not None and start > ensure_aware(end_date):
            continue
        rows.append(booking)
    return sorted(rows, key=lambda b: ensure_aware(b.start_time))


def list_upcoming_bookings(
    db: Session,
    user_id: int | None = None,
    now: datetime | None = None,
) -> list[Booking]:
    now_utc = ensure_aware(now or datetime.now(timezone.utc))
    rows = [
        b
        for b in db.query(Booking).all()
        if b.status in ("PENDING", "CONFIRMED")
        and ensure_aware(b.start_time) >= now_utc
        and (user_id is None or b.user_id == user_id)
    ]
    return sorted(rows, key=lambda b: ensure_aware(b.start_time))


def serialize_booking(booking: Booking) -> dict[str, Any]:
    return {
        "id": booking.id,
        "user_id": booking.user_id,
        "location_id": booking.location_id,
        "start_time": ensure_aware(booking.start_time).isoformat(),
        "end_time": ensure_aware(booking.end_time).isoformat(),
        "status": booking.status,
        "price": str(booking.price) if booking.price is not None else None,
        "notes": booking.notes,
        "duration_hours": booking.get_duration_hours(),
        "created_at": booking.created_at.isoformat() if booking.created_at else None,
    }
