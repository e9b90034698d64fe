from valet.db.models import Location
from valet.db.session import SessionLocal
from valet.schedules.bulk import create_bulk_schedules


WEEKDAY_HOURS = [
    {"day_of_week": day, "start_time": "07:00", "end_time": "22:00"} for day in range(1, 6)
]
WEEKEND_HOURS = [
    {"day_of_week": 0, "start_time": "10:00", "end_time": "20:00"},
    {"day_of_week": 6, "start_time": "09:00", "end_time": "23:00"},
]


def seed_demo_location() -> None:
    session = SessionLocal()
    try:
        existing = session.query(Location).filter(Location.name == "Demo Garage").first()
        if existing is not None:
            print(f"Demo location already exists with id={existing.id}")
            return

        demo = Location(
            name="Demo Garage",
            address="100 Main St",
            latitude=40.7128,
            longitude=-74.006,
            is_active=True,
        )
        session.add(demo)
        session.commit()
        session.refresh(demo)

        result = create_bulk_schedules(
            db=session,
            location_id=demo.id,
            entries=WEEKDAY_HOURS + WEEKEND_HOURS,
        )
        print(
            f"Created demo location with id={demo.id} "
            f"schedules={len(result.successful)} failed={len(result.failed)}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_location()
