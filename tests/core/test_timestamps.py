"""Tests for docker_jobs.core.timestamps."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from docker_jobs.core.timestamps import (
    ensure_utc,
    parse_engine_timestamp,
    seconds_between,
    utc_now,
)


class TestParseEngineTimestamp:
    def test_nanoseconds_truncated(self):
        parsed = parse_engine_timestamp("2024-03-01T12:00:00.123456789Z")
        assert parsed == datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=UTC)

    def test_no_fraction(self):
        assert parse_engine_timestamp("2024-03-01T12:00:00Z") == datetime(2024, 3, 1, 12, tzinfo=UTC)

    def test_short_fraction_padded(self):
        parsed = parse_engine_timestamp("2024-03-01T12:00:00.5Z")
        assert parsed.microsecond == 500000

    def test_offset_converted_to_utc(self):
        parsed = parse_engine_timestamp("2024-03-01T14:00:00+02:00")
        assert parsed == datetime(2024, 3, 1, 12, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "0001-01-01T00:00:00Z"])
    def test_unset_values(self, value):
        assert parse_engine_timestamp(value) is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_engine_timestamp("yesterday")


class TestEnsureUtc:
    def test_naive_is_assumed_utc(self):
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo is UTC

    def test_aware_is_converted(self):
        tz = timezone(timedelta(hours=-5))
        assert ensure_utc(datetime(2024, 1, 1, 7, tzinfo=tz)) == datetime(2024, 1, 1, 12, tzinfo=UTC)


class TestSecondsBetween:
    def test_whole_seconds(self):
        start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert seconds_between(start, start + timedelta(seconds=90, milliseconds=700)) == 90

    def test_never_negative(self):
        start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert seconds_between(start, start - timedelta(seconds=5)) == 0

    def test_mixed_naive_and_aware(self):
        start = datetime(2024, 1, 1, 12, 0, 0)
        end = datetime(2024, 1, 1, 12, 0, 10, tzinfo=UTC)
        assert seconds_between(start, end) == 10


def test_utc_now_is_aware():
    assert utc_now().tzinfo is UTC
