import logging
import os

from sqlalchemy.orm import Session

from . import codes, crud, models
from .errors import ConstraintViolation, DegradedSideEffect, NotFound, ValidationError

logger = logging.getLogger("urlshortener.services")

MAX_CODE_LENGTH = models.URL.__table__.c.short_code.type.length


def code_length(raw) -> int:
    """Parse a configured code length; it must fit the short_code column."""
    length = int(raw)
    if not 1 <= length <= MAX_CODE_LENGTH:
        raise RuntimeError(f"SHORT_CODE_LENGTH must be between 1 and {MAX_CODE_LENGTH}, got {length}")
    return length


SHORT_CODE_LENGTH = code_length(os.getenv("SHORT_CODE_LENGTH", 6))
# 1 keeps the original behavior: a collision fails the request outright
SHORTEN_MAX_ATTEMPTS = int(os.getenv("SHORTEN_MAX_ATTEMPTS", 1))


def shorten(
    db: Session,
    original_url: str,
    length: int = SHORT_CODE_LENGTH,
    max_attempts: int = SHORTEN_MAX_ATTEMPTS,
) -> models.URL:
    original_url = (original_url or "").strip()
    if not original_url:
        raise ValidationError("URL is required")
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    if not 1 <= length <= MAX_CODE_LENGTH:
        raise ValueError(f"length must be between 1 and {MAX_CODE_LENGTH}")

    for attempt in range(1, max_attempts + 1):
        code = codes.generate_code(length)
        try:
            return crud.insert_url(db, original_url, code)
        except ConstraintViolation:
            if attempt == max_attempts:
                raise
            logger.warning("Short code %s already taken, retrying (%d/%d)", code, attempt, max_attempts)

def record_visit(db: Session, url_id: int) -> None:
    """Fire-and-forget visit bookkeeping: failures are logged, never raised."""
    try:
        crud.increment_visits(db, url_id)
    except DegradedSideEffect:
        logger.warning("Error updating visit count for id=%s", url_id, exc_info=True)

def resolve(db: Session, short_code: str) -> str:
    url = crud.find_by_code(db, short_code)
    if url is None:
        raise NotFound(short_code)
    # read before the commit in record_visit expires the instance
    target = url.original_url
    record_visit(db, url.id)
    return target
