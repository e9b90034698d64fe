from valet.notifications.events import (
    BookingUpdateEvent,
    UserNotification,
    emit_booking_update,
    register_booking_update_sink,
    register_user_notification_sink,
    reset_sinks,
    send_user_notification,
)

__all__ = [
    "BookingUpdateEvent",
    "UserNotification",
    "emit_booking_update",
    "register_booking_update_sink",
    "register_user_notification_sink",
    "reset_sinks",
    "send_user_notification",
]
