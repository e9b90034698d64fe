from valet.admin.date_range import calendar_day_bounds
from valet.admin.oversight import (
    BookingFilters,
    delete_booking,
    get_all_bookings,
    get_all_schedules,
    parse_booking_filters,
    update_booking_status,
)

__all__ = [
    "BookingFilters",
    "calendar_day_bounds",
    "delete_booking",
    "get_all_bookings",
    "get_all_schedules",
    "parse_booking_filters",
    "update_booking_status",
]
