"""Atomic unit of work with bounded retry on transient store failures.

Every state-changing attendance operation runs through ``run_atomic``: the
work function executes against the session, the session commits, and any
exception rolls the whole unit back. ``OperationalError`` (lock timeouts,
deadlocks, "database is locked", dropped connections) is retried with
exponential backoff; business errors propagate on the first attempt.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from tenacity import (
    Retrying, before_sleep_log, retry_if_exception_type,
    stop_after_attempt, wait_exponential,
)

from rally.config import settings
from rally.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC. Naive values (SQLite hands these back) are UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def run_atomic(db: Session, work: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run ``work(db, *args, **kwargs)`` as one committed transaction."""
    retryer = Retrying(
        stop=stop_after_attempt(settings.TX_MAX_ATTEMPTS),
        wait=wait_exponential(
            multiplier=settings.TX_BACKOFF_SECONDS,
            max=settings.TX_BACKOFF_MAX_SECONDS,
        ),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    try:
        for attempt in retryer:
            with attempt:
                try:
                    result = work(db, *args, **kwargs)
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
    except OperationalError as exc:
        logger.error(
            "Giving up on %s after %d attempts: %s",
            getattr(work, "__name__", work), settings.TX_MAX_ATTEMPTS, exc,
        )
        raise TransientStoreError() from exc
    return result
