import logging

from pydantic import ValidationError as RowValidationError
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .database import Base
from .errors import ConstraintViolation, DegradedSideEffect, StoreUnavailable

logger = logging.getLogger("urlshortener.crud")


def init_db(engine) -> None:
    """Create the urls table if it does not exist yet."""
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        raise StoreUnavailable("could not initialize schema") from exc

def ping(db: Session) -> None:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StoreUnavailable("store did not answer ping") from exc

def insert_url(db: Session, original_url: str, short_code: str) -> models.URL:
    url = models.URL(original_url=original_url, short_code=short_code)
    db.add(url)
    try:
        db.commit()
        db.refresh(url)
    except IntegrityError as exc:
        db.rollback()
        raise ConstraintViolation(f"short code {short_code!r} already exists") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreUnavailable("insert failed") from exc
    return url

def find_by_code(db: Session, short_code: str) -> models.URL | None:
    try:
        return db.execute(
            select(models.URL).where(models.URL.short_code == short_code)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise StoreUnavailable(f"lookup of {short_code!r} failed") from exc

def increment_visits(db: Session, url_id: int) -> None:
    # visits = visits + 1 runs in the store, so concurrent redirects never lose an update
    stmt = (
        update(models.URL)
        .where(models.URL.id == url_id)
        .values(visits=models.URL.visits + 1)
        .execution_options(synchronize_session=False)
    )
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise DegradedSideEffect(f"visit increment for id={url_id} failed") from exc

def top_by_visits(db: Session, limit: int = 10) -> list[schemas.URLStat]:
    """Most visited records first.

    Order among equal visit counts is whatever the store returns and must
    not be relied upon. Rows that fail validation are logged and skipped.
    """
    stmt = (
        select(
            models.URL.original_url,
            models.URL.short_code,
            models.URL.created_at,
            models.URL.visits,
        )
        .order_by(models.URL.visits.desc())
        .limit(limit)
    )
    try:
        rows = db.execute(stmt).all()
    except SQLAlchemyError as exc:
        raise StoreUnavailable("stats query failed") from exc

    stats = []
    for row in rows:
        try:
            stats.append(schemas.URLStat.model_validate(row))
        except RowValidationError as exc:
            logger.warning("Skipping unreadable stats row %s: %s", row.short_code, exc)
    return stats
