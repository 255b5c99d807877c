"""
Shared fixtures for report intelligence tests.
"""

from datetime import datetime, timezone

import pytest

from report_intelligence.types import GeoPoint, ReportSnapshot, ReportStatus


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# Bengaluru city centre
BASE_LON = 77.5912
BASE_LAT = 12.9712


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_report():
    """Factory for ReportSnapshot with sensible defaults."""

    def _make(
        report_id="r-1",
        report_type="Pothole",
        title="Pothole on main road",
        description="",
        lon=BASE_LON,
        lat=BASE_LAT,
        status=ReportStatus.PENDING,
        created_at=NOW,
        **overrides,
    ):
        return ReportSnapshot(
            id=report_id,
            report_type=report_type,
            title=title,
            description=description,
            location=GeoPoint(longitude=lon, latitude=lat),
            status=status,
            created_at=created_at,
            **overrides,
        )

    return _make
