"""Tests for expiration classification and windows."""

from datetime import date, timedelta

import pytest

from medstock.services.expiration import (
    ExpirationBucket,
    classify_expiration,
    expiration_window,
    expiring_window,
)

AS_OF = date(2026, 3, 1)


def days(n: int) -> date:
    return AS_OF + timedelta(days=n)


class TestClassifyExpiration:
    """Lower bound exclusive, upper bound inclusive."""

    def test_no_date(self):
        assert classify_expiration(None, AS_OF) == ExpirationBucket.NONE

    @pytest.mark.parametrize(
        "offset, expected",
        [
            (-30, ExpirationBucket.EXPIRED),
            (-1, ExpirationBucket.EXPIRED),
            (0, ExpirationBucket.EXPIRED),
            (1, ExpirationBucket.CRITICAL),
            (14, ExpirationBucket.CRITICAL),
            (15, ExpirationBucket.SOON),
            (30, ExpirationBucket.SOON),
            (31, ExpirationBucket.NORMAL),
            (365, ExpirationBucket.NORMAL),
        ],
    )
    def test_default_windows(self, offset, expected):
        assert classify_expiration(days(offset), AS_OF) == expected

    def test_custom_windows(self):
        assert classify_expiration(days(7), AS_OF, critical_days=7, soon_days=10) == ExpirationBucket.CRITICAL
        assert classify_expiration(days(8), AS_OF, critical_days=7, soon_days=10) == ExpirationBucket.SOON
        assert classify_expiration(days(11), AS_OF, critical_days=7, soon_days=10) == ExpirationBucket.NORMAL


class TestExpirationWindows:
    """Windows must agree with the classifier so queries and labels match."""

    def test_critical_window(self):
        assert expiration_window(ExpirationBucket.CRITICAL, AS_OF) == (AS_OF, days(14))

    def test_soon_window(self):
        assert expiration_window(ExpirationBucket.SOON, AS_OF) == (days(14), days(30))

    def test_expiring_window_covers_critical_and_soon(self):
        assert expiring_window(AS_OF) == (AS_OF, days(30))

    @pytest.mark.parametrize("bucket", [ExpirationBucket.NONE, ExpirationBucket.EXPIRED, ExpirationBucket.NORMAL])
    def test_unbounded_buckets_rejected(self, bucket):
        with pytest.raises(ValueError):
            expiration_window(bucket, AS_OF)

    @pytest.mark.parametrize("offset", range(-2, 34))
    def test_window_membership_matches_classifier(self, offset):
        after, until = expiration_window(ExpirationBucket.CRITICAL, AS_OF)
        in_window = after < days(offset) <= until
        assert in_window == (classify_expiration(days(offset), AS_OF) == ExpirationBucket.CRITICAL)
