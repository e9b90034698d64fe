import pytest

from valet.notifications import events


@pytest.fixture
def notifications():
    captured = {"booking_updates": [], "user_notifications": []}
    events.register_booking_update_sink(captured["booking_updates"].append)
    events.register_user_notification_sink(captured["user_notifications"].append)
    yield captured
    events.reset_sinks()
