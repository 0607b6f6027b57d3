"""Expiration classification for inventory items.

Buckets, relative to ``as_of``:

    none      no expiration date
    expired   expiration_date <= as_of
    critical  as_of < expiration_date <= as_of + critical_days  (default 14)
    soon      as_of + critical_days < expiration_date <= as_of + soon_days  (default 30)
    normal    anything later

``expiration_window`` returns the same boundaries as a half-open date range
so database queries agree with ``classify_expiration``.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from medstock.core.config import settings


class ExpirationBucket(str, Enum):
    NONE = "none"
    EXPIRED = "expired"
    CRITICAL = "critical"
    SOON = "soon"
    NORMAL = "normal"


def today() -> date:
    """Current date in the configured timezone."""
    return datetime.now(ZoneInfo(settings.timezone)).date()


def classify_expiration(
    expiration_date: Optional[date],
    as_of: date,
    critical_days: Optional[int] = None,
    soon_days: Optional[int] = None,
) -> ExpirationBucket:
    """Classify an expiration date into a bucket relative to ``as_of``."""
    if expiration_date is None:
        return ExpirationBucket.NONE

    critical_days = settings.expiry_critical_days if critical_days is None else critical_days
    soon_days = settings.expiry_soon_days if soon_days is None else soon_days

    if expiration_date <= as_of:
        return ExpirationBucket.EXPIRED
    if expiration_date <= as_of + timedelta(days=critical_days):
        return ExpirationBucket.CRITICAL
    if expiration_date <= as_of + timedelta(days=soon_days):
        return ExpirationBucket.SOON
    return ExpirationBucket.NORMAL


def expiration_window(bucket: ExpirationBucket, as_of: date) -> Tuple[date, date]:
    """Return ``(after, until)`` such that ``after < expiration_date <= until``.

    ``CRITICAL`` and ``SOON`` map to their own bucket; use
    ``expiring_window`` for the combined "expires within soon_days" range.
    """
    critical_until = as_of + timedelta(days=settings.expiry_critical_days)
    soon_until = as_of + timedelta(days=settings.expiry_soon_days)

    if bucket == ExpirationBucket.CRITICAL:
        return as_of, critical_until
    if bucket == ExpirationBucket.SOON:
        return critical_until, soon_until
    raise ValueError(f"No bounded window for bucket {bucket.value!r}")


def expiring_window(as_of: date) -> Tuple[date, date]:
    """Window covering ``critical`` and ``soon`` together."""
    return as_of, as_of + timedelta(days=settings.expiry_soon_days)
