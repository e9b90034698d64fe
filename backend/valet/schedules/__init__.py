from valet.schedules.bulk import BulkScheduleResult, create_bulk_schedules
from valet.schedules.store import (
    CreateScheduleArgs,
    UpdateScheduleArgs,
    create_schedule,
    day_name,
    deactivate_schedule,
    delete_schedule,
    get_location_schedules,
    get_operating_hours,
    get_schedule,
    is_location_open,
    is_open_at,
    parse_create_schedule_args,
    parse_update_schedule_args,
    serialize_schedule,
    update_schedule,
)

__all__ = [
    "BulkScheduleResult",
    "CreateScheduleArgs",
    "UpdateScheduleArgs",
    "create_bulk_schedules",
    "create_schedule",
    "day_name",
    "deactivate_schedule",
    "delete_schedule",
    "get_location_schedules",
    "get_operating_hours",
    "get_schedule",
    "is_location_open",
    "is_open_at",
    "parse_create_schedule_args",
    "parse_update_schedule_args",
    "serialize_schedule",
    "update_schedule",
]
