from valet.db.base import Base
from valet.db.integrity import (
    DuplicateKeyError,
    commit_or_raise_duplicate,
    is_foreign_key_violation,
    translate_integrity_error,
)
from valet.db.models import Booking, Location, Schedule

__all__ = [
    "Base",
    "commit_or_raise_duplicate",
    "Booking",
    "DuplicateKeyError",
    "is_foreign_key_violation",
    "Location",
    "Schedule",
    "translate_integrity_error",
]
