from valet.bookings.availability import (
    check_overlap,
    find_overlapping_bookings,
    fits_operating_hours,
    intervals_overlap,
)
from valet.bookings.lifecycle import (
    VALID_TRANSITIONS,
    CreateBookingArgs,
    UpdateBookingArgs,
    UpdateBookingStatusArgs,
    can_transition,
    cancel_booking,
    create_booking,
    delete_booking,
    get_booking,
    get_duration_hours,
    parse_create_booking_args,
    parse_update_booking_args,
    parse_update_booking_status_args,
    update_booking,
    update_booking_status,
)
from valet.bookings.store import (
    list_location_bookings,
    list_upcoming_bookings,
    list_user_bookings,
    serialize_booking,
)

__all__ = [
    "VALID_TRANSITIONS",
    "CreateBookingArgs",
    "UpdateBookingArgs",
    "UpdateBookingStatusArgs",
    "can_transition",
    "cancel_booking",
    "check_overlap",
    "create_booking",
    "delete_booking",
    "find_overlapping_bookings",
    "fits_operating_hours",
    "get_booking",
    "get_duration_hours",
    "intervals_overlap",
    "list_location_bookings",
    "list_upcoming_bookings",
    "list_user_bookings",
    "parse_create_booking_args",
    "parse_update_booking_args",
    "parse_update_booking_status_args",
    "serialize_booking",
    "update_booking",
    "update_booking_status",
]
