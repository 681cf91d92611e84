"""Classification of database integrity errors into API responses"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

NOT_NULL_VIOLATION = "23502"
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"


def integrity_error_code(exc: IntegrityError) -> Optional[str]:
    """
    Return the SQLSTATE of an integrity error.

    psycopg exposes ``sqlstate``; SQLite only has the message text, which is
    mapped onto the equivalent Postgres codes.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code

    message = str(orig).lower()
    if "foreign key" in message:
        return FOREIGN_KEY_VIOLATION
    if "unique" in message:
        return UNIQUE_VIOLATION
    if "check constraint" in message:
        return CHECK_VIOLATION
    if "not null" in message:
        return NOT_NULL_VIOLATION
    return None


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return integrity_error_code(exc) == FOREIGN_KEY_VIOLATION


def is_unique_violation(exc: IntegrityError) -> bool:
    return integrity_error_code(exc) == UNIQUE_VIOLATION


def raise_for_integrity_error(
    exc: IntegrityError,
    foreign_key: str = "Referenced record does not exist",
    unique: str = "Record already exists",
    unique_status: int = 409,
) -> None:
    """Raise the HTTPException matching an integrity error (always raises)."""
    code = integrity_error_code(exc)
    if code == FOREIGN_KEY_VIOLATION:
        raise HTTPException(status_code=400, detail=foreign_key) from exc
    if code == UNIQUE_VIOLATION:
        raise HTTPException(status_code=unique_status, detail=unique) from exc
    if code in (CHECK_VIOLATION, NOT_NULL_VIOLATION):
        raise HTTPException(status_code=400, detail=f"Invalid data: {exc.orig}") from exc

    logger.error(f"❌ Unclassified integrity error: {exc.orig}")
    raise HTTPException(status_code=500, detail="Database error") from exc
