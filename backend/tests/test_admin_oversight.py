from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeDriverError, FakeSession, make_booking, make_location, make_schedule
from valet.admin.oversight import (
    BookingFilters,
    delete_booking,
    get_all_bookings,
    get_all_schedules,
    parse_booking_filters,
    update_booking_status,
)
from valet.db.models import Booking, Location
from valet.errors import InvalidTransitionError, NotFoundError, ValidationFailedError
from valet.locations.directory import delete_location, has_active_bookings


JAN = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)


def _seeded_session():
    return FakeSession(
        locations=[make_location(1), make_location(2)],
        bookings=[
            make_booking(1, JAN, JAN + timedelta(hours=1), status="CONFIRMED"),
            make_booking(2, JAN + timedelta(days=1), JAN + timedelta(days=1, hours=1), location_id=2),
            make_booking(3, JAN + timedelta(days=14), JAN + timedelta(days=14, hours=2), user_id=9),
            make_booking(4, JAN + timedelta(days=40), JAN + timedelta(days=40, hours=1), status="CANCELLED"),
        ],
    )


def _ids(result):
    return [b.id for b in result["bookings"]]


def test_get_all_bookings_defaults_to_newest_first():
    result = get_all_bookings(_seeded_session(), BookingFilters())

    assert _ids(result) == [4, 3, 2, 1]
    assert result["pagination"] == {
        "current_page": 1,
        "total_pages": 1,
        "total_items": 4,
        "items_per_page": 10,
    }


def test_get_all_bookings_filters_combine():
    db = _seeded_session()

    assert _ids(get_all_bookings(db, BookingFilters(status="confirmed"))) == [1]
    assert _ids(get_all_bookings(db, BookingFilters(location_id=2))) == [2]
    assert _ids(get_all_bookings(db, BookingFilters(user_id=9))) == [3]
    assert _ids(get_all_bookings(db, BookingFilters(location_id=1, status="PENDING"))) == [3]


def test_date_range_is_inclusive_of_whole_days():
    db = _seeded_session()

    result = get_all_bookings(
        db, BookingFilters(start_date="2030-01-01", end_date="2030-01-31", sort_order="asc")
    )

    assert _ids(result) == [1, 2, 3]


def test_malformed_date_yields_empty_page():
    result = get_all_bookings(_seeded_session(), BookingFilters(start_date="01/02/2030"))

    assert result["bookings"] == []
    assert result["pagination"]["total_items"] == 0
    assert result["pagination"]["total_pages"] == 0


def test_pagination_slices_sorted_rows():
    db = _seeded_session()

    first = get_all_bookings(db, BookingFilters(limit=3, sort_order="asc"))
    second = get_all_bookings(db, BookingFilters(limit=3, page=2, sort_order="asc"))

    assert _ids(first) == [1, 2, 3]
    assert _ids(second) == [4]
    assert second["pagination"]["total_pages"] == 2
    assert second["pagination"]["current_page"] == 2


def test_unknown_sort_field_falls_back_to_start_time():
    result = get_all_bookings(_seeded_session(), BookingFilters(sort_by="user_id; drop", sort_order="asc"))

    assert _ids(result) == [1, 2, 3, 4]


def test_parse_booking_filters_coerces_query_strings():
    filters = parse_booking_filters({"page": "2", "limit": "5", "location_id": "1", "extra": "x"})

    assert filters.page == 2
    assert filters.limit == 5
    assert filters.location_id == 1

    with pytest.raises(ValueError):
        parse_booking_filters({"page": "0"})
    with pytest.raises(ValueError):
        parse_booking_filters({"limit": "1000"})


def test_get_all_schedules_orders_by_location_then_day():
    db = FakeSession(
        locations=[make_location(1), make_location(2)],
        schedules=[
            make_schedule(1, 3, "09:00", "17:00", location_id=2),
            make_schedule(2, 5, "09:00", "17:00"),
            make_schedule(3, 1, "09:00", "17:00", location_id=2),
            make_schedule(4, 0, "10:00", "14:00"),
        ],
    )

    assert [s.id for s in get_all_schedules(db)] == [4, 2, 3, 1]


def test_admin_status_change_rejects_same_status():
    db = _seeded_session()

    with pytest.raises(InvalidTransitionError) as same:
        update_booking_status(db, 1, "CONFIRMED")

    assert same.value.human_message == (
        "Booking is already CONFIRMED; cannot transition from CONFIRMED to CONFIRMED"
    )


def test_admin_status_change_follows_transition_table(notifications):
    db = _seeded_session()

    assert update_booking_status(db, 1, "IN_PROGRESS").status == "IN_PROGRESS"
    with pytest.raises(InvalidTransitionError):
        update_booking_status(db, 4, "PENDING")
    with pytest.raises(NotFoundError):
        update_booking_status(db, 99, "CONFIRMED")
    assert [e.status for e in notifications["booking_updates"]] == ["IN_PROGRESS"]


def test_admin_delete_booking():
    db = _seeded_session()

    delete_booking(db, 2)

    assert [b.id for b in db.store[Booking]] == [1, 3, 4]


def test_delete_location_blocked_by_active_bookings():
    db = _seeded_session()

    assert has_active_bookings(db, 1) is True
    with pytest.raises(ValidationFailedError, match="Cannot delete location with active bookings"):
        delete_location(db, 1)
    with pytest.raises(NotFoundError):
        delete_location(db, 77)


def test_delete_location_with_only_finished_bookings():
    db = FakeSession(
        locations=[make_location(1)],
        bookings=[make_booking(1, JAN, JAN + timedelta(hours=1), status="COMPLETED")],
    )

    delete_location(db, 1)

    assert db.store[Location] == []
    assert db.store[Booking] == []


def test_delete_location_refused_by_storage_when_booking_arrives_late():
    db = FakeSession(
        locations=[make_location(1)],
        commit_errors=[
            FakeDriverError(
                'update or delete on table "locations" violates foreign key constraint',
                "23503",
                "bookings_location_id_fkey",
            )
        ],
    )

    with pytest.raises(ValidationFailedError) as blocked:
        delete_location(db, 1)

    assert blocked.value.human_message == "Cannot delete location with active bookings"
    assert db.rollbacks == 1
    assert db.commits == 0
