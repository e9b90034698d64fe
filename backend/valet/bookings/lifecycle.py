from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from valet.bookings.availability import check_overlap, fits_operating_hours
from valet.bookings.store import (
    ensure_aware,
    find_booking,
    insert_booking,
    remove_booking,
    save_booking,
)
from valet.config import CALENDAR_TIMEZONE
from valet.db.integrity import DuplicateKeyError
from valet.db.models import BOOKING_STATUSES, NOTES_MAX_LENGTH, Booking
from valet.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from valet.locations.directory import LocationDirectory
from valet.notifications.events import emit_booking_update, send_user_notification


logger = logging.getLogger("valet.bookings.lifecycle")

VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    "PENDING": frozenset({"CONFIRMED", "CANCELLED"}),
    "CONFIRMED": frozenset({"IN_PROGRESS", "CANCELLED"}),
    "IN_PROGRESS": frozenset({"COMPLETED", "CANCELLED"}),
    "COMPLETED": frozenset(),
    "CANCELLED": frozenset(),
}

SLOT_UNAVAILABLE = "Booking time slot is not available"
UPDATED_SLOT_UNAVAILABLE = "Updated booking time slot is not available"
BOOKING_NOT_FOUND = "Booking not found"
LOCATION_CLOSED = "Location is closed during the requested time"

_TERMINAL_NOTIFICATIONS = {
    "COMPLETED": (
        "booking_completed",
        "Booking Completed",
        "Your valet parking service has been completed",
    ),
    "CANCELLED": (
        "booking_cancelled",
        "Booking Cancelled",
        "Your valet parking booking has been cancelled",
    ),
}


class CreateBookingArgs(BaseModel):
    user_id: int
    location_id: int
    start_time: datetime
    end_time: datetime
    price: Decimal = Field(ge=0)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None


class UpdateBookingArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start_time: datetime | None = None
    end_time: datetime | None = None
    price: Decimal | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @model_validator(mode="after")
    def validate_changes_present(self) -> "UpdateBookingArgs":
        if not self.model_fields_set:
            raise ValueError("At least one change is required.")
        return self


class UpdateBookingStatusArgs(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in BOOKING_STATUSES:
            raise ValueError(f"status must be one of {', '.join(BOOKING_STATUSES)}")
        return normalized


def parse_create_booking_args(raw_args: dict[str, Any]) -> CreateBookingArgs:
    return CreateBookingArgs.model_validate(raw_args)


def parse_update_booking_args(raw_args: dict[str, Any]) -> UpdateBookingArgs:
    return UpdateBookingArgs.model_validate(raw_args)


def parse_update_booking_status_args(raw_args: dict[str, Any]) -> UpdateBookingStatusArgs:
    return UpdateBookingStatusArgs.model_validate(raw_args)


def get_duration_hours(booking: Any) -> float:
    start = getattr(booking, "start_time", None)
    end = getattr(booking, "end_time", None)
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        return 0
    return (ensure_aware(end) - ensure_aware(start)).total_seconds() / 3600


def can_transition(current_status: str, new_status: str) -> bool:
    return new_status in VALID_TRANSITIONS.get(current_status, frozenset())


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = find_booking(db, booking_id)
    if booking is None:
        raise NotFoundError(BOOKING_NOT_FOUND)
    return booking


def create_booking(
    db: Session,
    args: CreateBookingArgs,
    locations: LocationDirectory | None = None,
    now: datetime | None = None,
) -> Booking:
    locations = locations or LocationDirectory(db)
    start_time = ensure_aware(args.start_time)
    end_time = ensure_aware(args.end_time)
    now_utc = ensure_aware(now or datetime.now(timezone.utc))

    if end_time <= start_time:
        raise ValidationFailedError("End time must be after start time")
    if start_time < now_utc:
        raise ValidationFailedError("Cannot create booking in the past")
    if not locations.exists(args.location_id):
        raise NotFoundError("Location not found")
    if not locations.is_active(args.location_id):
        raise ValidationFailedError("Location is not accepting bookings")
    if not fits_operating_hours(db, args.location_id, start_time, end_time, CALENDAR_TIMEZONE):
        raise ValidationFailedError(LOCATION_CLOSED)

    if check_overlap(db, args.location_id, start_time, end_time):
        raise ConflictError(SLOT_UNAVAILABLE)

    booking = Booking(
        user_id=args.user_id,
        location_id=args.location_id,
        start_time=start_time,
        end_time=end_time,
        status="PENDING",
        price=args.price,
        notes=args.notes,
    )
    try:
        insert_booking(db, booking)
    except DuplicateKeyError as exc:
        raise ConflictError(SLOT_UNAVAILABLE) from exc

    logger.info(
        json.dumps(
            {
                "event": "booking_created",
                "booking_id": booking.id,
                "location_id": booking.location_id,
                "user_id": booking.user_id,
            }
        )
    )
    emit_booking_update(booking)
    send_user_notification(
        booking,
        notification_type="booking_created",
        title="Booking Received",
        message="Your valet parking booking has been received and is pending confirmation",
    )
    return booking


def update_booking(db: Session, booking_id: int, args: UpdateBookingArgs) -> Booking:
    booking = get_booking(db, booking_id)
    patch = args.model_dump(exclude_unset=True)

    if "start_time" in patch or "end_time" in patch:
        new_start = ensure_aware(patch.get("start_time") or booking.start_time)
        new_end = ensure_aware(patch.get("end_time") or booking.end_time)
        if new_end <= new_start:
            raise ValidationFailedError("End time must be after start time")
        if not fits_operating_hours(
            db, booking.location_id, new_start, new_end, CALENDAR_TIMEZONE
        ):
            raise ValidationFailedError(LOCATION_CLOSED)
        if check_overlap(
            db,
            booking.location_id,
            new_start,
            new_end,
            exclude_booking_id=booking.id,
        ):
            raise ConflictError(UPDATED_SLOT_UNAVAILABLE)
        patch["start_time"] = new_start
        patch["end_time"] = new_end

    if "price" in patch and patch["price"] is None:
        raise ValidationFailedError("Price is required")
    if patch.get("notes") is not None:
        patch["notes"] = patch["notes"].strip()

    for field, value in patch.items():
        setattr(booking, field, value)

    try:
        save_booking(db)
    except DuplicateKeyError as exc:
        raise ConflictError(UPDATED_SLOT_UNAVAILABLE) from exc
    return booking


def update_booking_status(db: Session, booking_id: int, new_status: str) -> Booking:
    booking = get_booking(db, booking_id)
    current_status = booking.status

    if not can_transition(current_status, new_status):
        raise InvalidTransitionError(f"Cannot transition from {current_status} to {new_status}")

    booking.status = new_status
    try:
        save_booking(db)
    except DuplicateKeyError as exc:
        booking.status = current_status
        raise ConflictError(SLOT_UNAVAILABLE) from exc

    logger.info(
        json.dumps(
            {
                "event": "booking_status_changed",
                "booking_id": booking.id,
                "from_status": current_status,
                "to_status": new_status,
            }
        )
    )
    emit_booking_update(booking)
    if new_status in _TERMINAL_NOTIFICATIONS:
        notification_type, title, message = _TERMINAL_NOTIFICATIONS[new_status]
        send_user_notification(
            booking,
            notification_type=notification_type,
            title=title,
            message=message,
        )
    return booking


def cancel_booking(db: Session, booking_id: int) -> Booking:
    booking = get_booking(db, booking_id)
    if booking.status == "COMPLETED":
        raise InvalidTransitionError("Completed bookings cannot be cancelled")
    if booking.status == "CANCELLED":
        raise InvalidTransitionError("Booking is already cancelled")
    return update_booking_status(db, booking_id, "CANCELLED")


def delete_booking(db: Session, booking_id: int) -> None:
    booking = get_booking(db, booking_id)
    if booking.status in ("IN_PROGRESS", "COMPLETED"):
        raise ValidationFailedError("Cannot delete bookings that are in progress or completed")

    remove_booking(db, booking)
    logger.info("Deleted booking_id=%s", booking_id)
    emit_booking_update(booking, status="CANCELLED")
