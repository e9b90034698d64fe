from valet.locations.directory import (
    LocationDirectory,
    delete_location,
    has_active_bookings,
    user_has_active_bookings,
)

__all__ = [
    "LocationDirectory",
    "delete_location",
    "has_active_bookings",
    "user_has_active_bookings",
]
