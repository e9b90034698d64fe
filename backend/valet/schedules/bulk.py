from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from valet.db.models import Schedule
from valet.errors import BookingEngineError
from valet.locations.directory import LocationDirectory
from valet.schedules.store import create_schedule, parse_create_schedule_args


logger = logging.getLogger("valet.schedules.bulk")


@dataclass
class BulkScheduleResult:
    successful: list[Schedule] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def all_failed(self) -> bool:
        return not self.successful and bool(self.failed)


def create_bulk_schedules(
    db: Session,
    location_id: int,
    entries: list[dict[str, Any]],
    locations: LocationDirectory | None = None,
) -> BulkScheduleResult:
    """Create each entry independently; one bad entry never aborts the batch.

    ``failed`` holds ``{"schedule": entry, "error": message}`` in input order.
    """
    locations = locations or LocationDirectory(db)
    result = BulkScheduleResult()

    for entry in entries:
        try:
            args = parse_create_schedule_args({**entry, "location_id": location_id})
            result.successful.append(create_schedule(db, args, locations=locations))
        except ValidationError as exc:
            result.failed.append(
                {"schedule": entry, "error": f"Invalid args: {exc.errors()[0]['msg']}"}
            )
        except BookingEngineError as exc:
            db.rollback()
            result.failed.append({"schedule": entry, "error": exc.human_message})

    logger.info(
        "Bulk schedule provisioning location_id=%s successful=%s failed=%s",
        location_id,
        len(result.successful),
        len(result.failed),
    )
    return result
