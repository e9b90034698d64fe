from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel, Field


logger = logging.getLogger("valet.notifications")


class BookingUpdateEvent(BaseModel):
    booking_id: str
    status: str
    location_id: str
    user_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserNotification(BaseModel):
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


BookingUpdateSink = Callable[[BookingUpdateEvent], None]
UserNotificationSink = Callable[[UserNotification], None]

_booking_update_sinks: list[BookingUpdateSink] = []
_user_notification_sinks: list[UserNotificationSink] = []


def _log_booking_update(event: BookingUpdateEvent) -> None:
    logger.info(json.dumps({"event": "booking_update", **event.model_dump(mode="json")}))


def _log_user_notification(notification: UserNotification) -> None:
    logger.info(
        json.dumps({"event": "user_notification", **notification.model_dump(mode="json")})
    )


def register_booking_update_sink(sink: BookingUpdateSink) -> None:
    _booking_update_sinks.append(sink)


def register_user_notification_sink(sink: UserNotificationSink) -> None:
    _user_notification_sinks.append(sink)


def reset_sinks() -> None:
    _booking_update_sinks[:] = [_log_booking_update]
    _user_notification_sinks[:] = [_log_user_notification]


def emit_booking_update(booking: Any, status: str | None = None) -> None:
    """Fire-and-forget; sink failures are logged and never raised."""
    event = BookingUpdateEvent(
        booking_id=str(booking.id),
        status=status or booking.status,
        location_id=str(booking.location_id),
        user_id=str(booking.user_id),
    )
    for sink in list(_booking_update_sinks):
        try:
            sink(event)
        except Exception:
            logger.exception(
                "Booking update dispatch failed for booking_id=%s status=%s",
                event.booking_id,
                event.status,
            )


def send_user_notification(
    booking: Any,
    notification_type: str,
    title: str,
    message: str,
) -> None:
    notification = UserNotification(
        user_id=str(booking.user_id),
        type=notification_type,
        title=title,
        message=message,
        data={
            "booking_id": str(booking.id),
            "location_id": str(booking.location_id),
        },
    )
    for sink in list(_user_notification_sinks):
        try:
            sink(notification)
        except Exception:
            logger.exception(
                "User notification dispatch failed for booking_id=%s type=%s",
                notification.data["booking_id"],
                notification.type,
            )


reset_sinks()
