"""
Core Package.

Shared clock and error types used by the database layer and
by report_intelligence.
"""

from .clock import (
    ClockProtocol,
    SystemClock,
    MockClock,
    get_clock,
    set_clock,
    use_mock_clock,
    now_utc,
    ensure_utc,
)
from .exceptions import (
    Severity,
    CivicPlatformError,
    ConfigurationError,
    StoreError,
    StoreUnavailableError,
    StoreQueryError,
)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "get_clock",
    "set_clock",
    "use_mock_clock",
    "now_utc",
    "ensure_utc",
    "Severity",
    "CivicPlatformError",
    "ConfigurationError",
    "StoreError",
    "StoreUnavailableError",
    "StoreQueryError",
]
