from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from valet.db.integrity import DuplicateKeyError, commit_or_raise_duplicate
from valet.db.models import SCHEDULE_DAY_CONSTRAINT, Schedule
from valet.errors import ConflictError, NotFoundError, ValidationFailedError
from valet.locations.directory import LocationDirectory


logger = logging.getLogger("valet.schedules")

TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
SCHEDULE_ALREADY_EXISTS = "Schedule already exists for this location and day"
SCHEDULE_NOT_FOUND = "Schedule not found"

_time_re = re.compile(TIME_PATTERN)


class CreateScheduleArgs(BaseModel):
    location_id: int
    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    is_active: bool = True


class UpdateScheduleArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_PATTERN)
    is_active: bool | None = None


def parse_create_schedule_args(raw_args: dict[str, Any]) -> CreateScheduleArgs:
    return CreateScheduleArgs.model_validate(raw_args)


def parse_update_schedule_args(raw_args: dict[str, Any]) -> UpdateScheduleArgs:
    return UpdateScheduleArgs.model_validate(raw_args)


def time_to_minutes(value: str | None) -> int | None:
    if not isinstance(value, str) or not _time_re.match(value.strip()):
        return None
    hour, minute = value.strip().split(":")
    return int(hour) * 60 + int(minute)


def day_name(day_of_week: int) -> str:
    if 0 <= day_of_week < len(DAY_NAMES):
        return DAY_NAMES[day_of_week]
    return "Invalid Day"


def is_open_at(schedule: Schedule, time_string: str) -> bool:
    if not schedule.is_active:
        return False
    check_minutes = time_to_minutes(time_string)
    start_minutes = time_to_minutes(schedule.start_time)
    end_minutes = time_to_minutes(schedule.end_time)
    if check_minutes is None or start_minutes is None or end_minutes is None:
        return False
    return start_minutes <= check_minutes < end_minutes


def operating_hours(schedule: Schedule) -> float:
    start_minutes = time_to_minutes(schedule.start_time) or 0
    end_minutes = time_to_minutes(schedule.end_time) or 0
    return (end_minutes - start_minutes) / 60


def get_schedule(db: Session, schedule_id: int) -> Schedule | None:
    for schedule in db.query(Schedule).all():
        if schedule.id == schedule_id:
            return schedule
    return None


def find_schedule_for_day(
    db: Session,
    location_id: int,
    day_of_week: int,
    active_only: bool = True,
) -> Schedule | None:
    for schedule in db.query(Schedule).filter(Schedule.location_id == location_id).all():
        if schedule.location_id != location_id or schedule.day_of_week != day_of_week:
            continue
        if active_only and not schedule.is_active:
            continue
        return schedule
    return None


def get_location_schedules(
    db: Session, location_id: int, active_only: bool = True
) -> list[Schedule]:
    schedules = [
        s
        for s in db.query(Schedule).filter(Schedule.location_id == location_id).all()
        if s.location_id == location_id and (s.is_active or not active_only)
    ]
    return sorted(schedules, key=lambda s: (s.day_of_week, time_to_minutes(s.start_time) or 0))


def create_schedule(
    db: Session,
    args: CreateScheduleArgs,
    locations: LocationDirectory | None = None,
) -> Schedule:
    locations = locations or LocationDirectory(db)
    if not locations.exists(args.location_id):
        raise NotFoundError("Location not found")

    _ensure_window(args.start_time, args.end_time)

    if find_schedule_for_day(db, args.location_id, args.day_of_week, active_only=False):
        raise ConflictError(SCHEDULE_ALREADY_EXISTS)

    schedule = Schedule(
        location_id=args.location_id,
        day_of_week=args.day_of_week,
        start_time=args.start_time,
        end_time=args.end_time,
        is_active=args.is_active,
    )
    db.add(schedule)
    _commit_schedule(db)
    logger.info(
        "Created schedule_id=%s location_id=%s day=%s",
        schedule.id,
        schedule.location_id,
        day_name(schedule.day_of_week),
    )
    return schedule


def update_schedule(db: Session, schedule_id: int, args: UpdateScheduleArgs) -> Schedule:
    schedule = get_schedule(db, schedule_id)
    if schedule is None:
        raise NotFoundError(SCHEDULE_NOT_FOUND)

    patch = args.model_dump(exclude_unset=True, exclude_none=True)
    if "start_time" in patch or "end_time" in patch:
        _ensure_window(
            patch.get("start_time", schedule.start_time),
            patch.get("end_time", schedule.end_time),
        )

    new_day = patch.get("day_of_week")
    if new_day is not None and new_day != schedule.day_of_week:
        taken = find_schedule_for_day(db, schedule.location_id, new_day, active_only=False)
        if taken is not None and taken.id != schedule.id:
            raise ConflictError(SCHEDULE_ALREADY_EXISTS)

    for field, value in patch.items():
        setattr(schedule, field, value)

    _commit_schedule(db)
    return schedule


def deactivate_schedule(db: Session, schedule_id: int) -> Schedule:
    return update_schedule(db, schedule_id, UpdateScheduleArgs(is_active=False))


def delete_schedule(db: Session, schedule_id: int) -> None:
    schedule = get_schedule(db, schedule_id)
    if schedule is None:
        raise NotFoundError(SCHEDULE_NOT_FOUND)
    db.delete(schedule)
    db.commit()


def is_location_open(db: Session, location_id: int, day_of_week: int, time_string: str) -> bool:
    schedule = find_schedule_for_day(db, location_id, day_of_week)
    if schedule is None:
        return False
    return is_open_at(schedule, time_string)


def get_operating_hours(db: Session, location_id: int, day_of_week: int) -> float | None:
    schedule = find_schedule_for_day(db, location_id, day_of_week)
    if schedule is None:
        return None
    return operating_hours(schedule)


def serialize_schedule(schedule: Schedule) -> dict[str, Any]:
    return {
        "id": schedule.id,
        "location_id": schedule.location_id,
        "day_of_week": schedule.day_of_week,
        "day_name": day_name(schedule.day_of_week),
        "start_time": schedule.start_time,
        "end_time": schedule.end_time,
        "is_active": schedule.is_active,
    }


def _ensure_window(start_time: str, end_time: str) -> None:
    start_minutes = time_to_minutes(start_time)
    end_minutes = time_to_minutes(end_time)
    if start_minutes is None or end_minutes is None:
        raise ValidationFailedError("Time must be in HH:MM format")
    if end_minutes <= start_minutes:
        raise ValidationFailedError("End time must be after start time")


def _commit_schedule(db: Session) -> None:
    try:
        commit_or_raise_duplicate(db, known_constraints=(SCHEDULE_DAY_CONSTRAINT,))
    except DuplicateKeyError as exc:
        raise ConflictError(SCHEDULE_ALREADY_EXISTS) from exc
