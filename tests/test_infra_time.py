"""Tests for time utilities."""

from datetime import datetime, timezone

import pytest

from zaphub.infra.time import epoch_ms, from_epoch_seconds, parse_timestamp, utc_now


class TestUtcNow:
    """Tests for utc_now()."""

    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after

    def test_epoch_ms_close_to_now(self):
        assert abs(epoch_ms() / 1000 - utc_now().timestamp()) < 5


class TestParseTimestamp:
    @pytest.mark.parametrize(
        "value",
        [
            "2026-01-02T03:04:05Z",
            "2026-01-02T03:04:05+00:00",
            "2026-01-02T03:04:05",
            1767323045,
            1767323045000,
            "1767323045",
        ],
    )
    def test_same_instant(self, value):
        assert parse_timestamp(value) == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, [1]])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None


class TestFromEpochSeconds:
    def test_string_seconds(self):
        assert from_epoch_seconds("1700000000").year == 2023

    def test_garbage(self):
        assert from_epoch_seconds("soon") is None
        assert from_epoch_seconds(None) is None
