"""
Tests for instant normalization.
"""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from ledger_reconciler.domain.instant import UTC, end_of_day, to_instant, to_storage
from ledger_reconciler.errors import ValidationError

JULY_FIRST = datetime(2025, 7, 1, tzinfo=UTC)
JULY_FIRST_EPOCH = 1751328000


class TestToInstant:

    @pytest.mark.parametrize("value", [
        "2025-07-01",
        "2025-07-01T00:00:00Z",
        "2025-07-01T02:00:00+02:00",
        "Tue Jul 01 2025",
        date(2025, 7, 1),
        datetime(2025, 7, 1),
        {"seconds": JULY_FIRST_EPOCH, "nanoseconds": 0},
        {"_seconds": JULY_FIRST_EPOCH, "_nanoseconds": 0},
    ])
    def test_supported_representations(self, value):
        assert to_instant(value) == JULY_FIRST

    def test_result_is_utc_aware(self):
        result = to_instant(datetime(2025, 7, 1, 2, tzinfo=timezone(timedelta(hours=2))))
        assert result.tzinfo == UTC
        assert result == JULY_FIRST

    def test_timestamp_object_with_nanoseconds(self):
        ts = SimpleNamespace(seconds=JULY_FIRST_EPOCH, nanoseconds=500_000_000)
        assert to_instant(ts) == JULY_FIRST + timedelta(milliseconds=500)

    @pytest.mark.parametrize("value", [None, "", "not a date", 42, {"foo": 1}, [2025, 7, 1]])
    def test_unreadable_values_rejected(self, value):
        with pytest.raises(ValidationError):
            to_instant(value)


class TestStorageAndBoundaries:

    def test_to_storage_is_naive_utc(self):
        stored = to_storage("2025-07-01T02:00:00+02:00")
        assert stored.tzinfo is None
        assert stored == datetime(2025, 7, 1)

    def test_end_of_day_is_last_millisecond(self):
        assert end_of_day(date(2025, 6, 30)) == datetime(
            2025, 6, 30, 23, 59, 59, 999000, tzinfo=UTC
        )
