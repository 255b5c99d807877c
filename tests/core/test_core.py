"""
Tests for core infrastructure: clock and exceptions.
"""

from datetime import datetime, timedelta, timezone

from core.clock import MockClock, SystemClock, ensure_utc, get_clock, now_utc, use_mock_clock
from core.exceptions import (
    CivicPlatformError,
    ConfigurationError,
    Severity,
    StoreError,
    StoreQueryError,
    StoreUnavailableError,
)


class TestClock:

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo is not None

    def test_mock_clock_advance(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        clock = MockClock(start)

        clock.advance(days=2)

        assert clock.now() == start + timedelta(days=2)

    def test_use_mock_clock_restores_default(self):
        original = get_clock()
        frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)

        with use_mock_clock(frozen):
            assert now_utc() == frozen

        assert get_clock() is original

    def test_mock_clock_set_time_treats_naive_as_utc(self):
        clock = MockClock(datetime(2024, 1, 1, tzinfo=timezone.utc))

        clock.set_time(datetime(2024, 3, 1, 9, 30))

        assert clock.now() == datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)

    def test_age_of(self):
        clock = MockClock(datetime(2024, 1, 3, tzinfo=timezone.utc))
        assert clock.age_of(datetime(2024, 1, 1)) == timedelta(days=2)

    def test_ensure_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc


class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(StoreUnavailableError, StoreError)
        assert issubclass(StoreQueryError, StoreError)
        assert issubclass(StoreError, CivicPlatformError)

    def test_to_dict(self):
        cause = ValueError("bad")
        error = StoreQueryError("query failed", operation="scan", cause=cause)

        payload = error.to_dict()

        assert payload["type"] == "StoreQueryError"
        assert payload["severity"] == Severity.HIGH.value
        assert payload["context"]["operation"] == "scan"
        assert payload["context"]["cause_type"] == "ValueError"

    def test_configuration_error_context(self):
        error = ConfigurationError("bad value", config_key="X", actual_value="y" * 500)

        assert error.context["config_key"] == "X"
        assert len(error.context["actual_value"]) == 100
        assert error.severity == Severity.HIGH
