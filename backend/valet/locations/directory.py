from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from valet.db.integrity import is_foreign_key_violation
from valet.db.models import ACTIVE_BOOKING_STATUSES, Booking, Location
from valet.errors import NotFoundError, ValidationFailedError


logger = logging.getLogger("valet.locations")

LOCATION_HAS_ACTIVE_BOOKINGS = "Cannot delete location with active bookings"


class LocationDirectory:
    """Read-only view of locations for the booking and schedule paths."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, location_id: int) -> Location | None:
        for location in self.db.query(Location).all():
            if location.id == location_id:
                return location
        return None

    def exists(self, location_id: int) -> bool:
        return self.get(location_id) is not None

    def is_active(self, location_id: int) -> bool:
        location = self.get(location_id)
        return location is not None and bool(location.is_active)


def has_active_bookings(db: Session, location_id: int) -> bool:
    return any(
        booking.location_id == location_id and booking.status in ACTIVE_BOOKING_STATUSES
        for booking in db.query(Booking).filter(Booking.location_id == location_id).all()
    )


def user_has_active_bookings(db: Session, user_id: int) -> bool:
    return any(
        booking.user_id == user_id and booking.status in ACTIVE_BOOKING_STATUSES
        for booking in db.query(Booking).filter(Booking.user_id == user_id).all()
    )


def delete_location(db: Session, location_id: int) -> None:
    location = LocationDirectory(db).get(location_id)
    if location is None:
        raise NotFoundError("Location not found")
    if has_active_bookings(db, location_id):
        raise ValidationFailedError(LOCATION_HAS_ACTIVE_BOOKINGS)

    # bookings.location_id is ON DELETE RESTRICT; finished history goes first.
    for booking in db.query(Booking).filter(Booking.location_id == location_id).all():
        if booking.location_id == location_id and booking.status not in ACTIVE_BOOKING_STATUSES:
            db.delete(booking)
    db.delete(location)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_foreign_key_violation(exc):
            raise
        raise ValidationFailedError(LOCATION_HAS_ACTIVE_BOOKINGS) from exc
    logger.info("Deleted location_id=%s", location_id)
