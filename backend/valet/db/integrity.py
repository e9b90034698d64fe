from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session


FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
EXCLUSION_VIOLATION = "23P01"
DUPLICATE_KEY_SQLSTATES = {UNIQUE_VIOLATION, EXCLUSION_VIOLATION}


class DuplicateKeyError(Exception):
    """A write collided with a unique index or exclusion constraint."""

    def __init__(self, constraint: str | None, message: str = "Duplicate key") -> None:
        super().__init__(message)
        self.constraint = constraint


def translate_integrity_error(
    exc: IntegrityError, known_constraints: tuple[str, ...] = ()
) -> DuplicateKeyError | None:
    """Map a driver IntegrityError to DuplicateKeyError, or None for other violations."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    diag = getattr(orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None) if diag is not None else None

    if not constraint:
        text = str(orig if orig is not None else exc)
        constraint = next((name for name in known_constraints if name in text), None)

    if sqlstate in DUPLICATE_KEY_SQLSTATES or constraint in known_constraints:
        return DuplicateKeyError(constraint=constraint, message=str(orig or exc))
    return None


def commit_or_raise_duplicate(db: Session, known_constraints: tuple[str, ...] = ()) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        duplicate = translate_integrity_error(exc, known_constraints)
        if duplicate is None:
            raise
        raise duplicate from exc


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate == FOREIGN_KEY_VIOLATION
