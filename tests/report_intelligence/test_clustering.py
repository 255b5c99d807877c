"""
Tests for the Risk Area Clusterer.
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import StoreQueryError
from report_intelligence.clustering import RiskAreaClusterer, cluster_reports, grid_cell
from report_intelligence.config import RiskClusteringConfig
from report_intelligence.store import InMemoryReportStore, ReportStore
from report_intelligence.types import GeoPoint, ReportStatus


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def cell_reports(make_report):
    """Build n reports inside the (lat, lon) grid cell."""

    def _build(prefix, lat, lon, types, status=ReportStatus.PENDING):
        return [
            make_report(
                report_id=f"{prefix}-{i}",
                report_type=report_type,
                lat=lat + 0.0005 * i,
                lon=lon + 0.0005 * i,
                status=status,
            )
            for i, report_type in enumerate(types)
        ]

    return _build


# ============================================================
# PURE CLUSTERING
# ============================================================

class TestClusterReports:
    """Test grid bucketing and ranking."""

    def test_single_cell(self, cell_reports):
        reports = cell_reports("a", 12.971, 77.591, ["Pothole", "Pothole", "Garbage"])

        areas = cluster_reports(reports)

        assert len(areas) == 1
        area = areas[0]
        assert area.latitude == pytest.approx(12.97)
        assert area.longitude == pytest.approx(77.59)
        assert area.count == 3
        assert area.types == {"Pothole": 2, "Garbage": 1}
        assert area.risk_score == 3 * 10 + 2 * 5

    def test_cells_below_three_reports_dropped(self, cell_reports):
        reports = cell_reports("a", 12.971, 77.591, ["Pothole", "Garbage"])
        assert cluster_reports(reports) == []

    def test_sorted_descending(self, cell_reports):
        reports = (
            cell_reports("small", 13.051, 77.651, ["Garbage"] * 3)
            + cell_reports("big", 12.971, 77.591, ["Pothole"] * 5)
        )

        areas = cluster_reports(reports)

        assert [a.count for a in areas] == [5, 3]
        assert areas[0].risk_score >= areas[1].risk_score

    def test_top_ten_only(self, cell_reports):
        reports = []
        for i in range(12):
            reports += cell_reports(f"c{i}", 12.101 + i * 0.1, 77.101, ["Pothole"] * 3)

        areas = cluster_reports(reports)

        assert len(areas) == 10

    def test_invalid_locations_skipped(self, cell_reports, make_report):
        reports = cell_reports("a", 12.971, 77.591, ["Pothole"] * 2)
        reports.append(make_report(report_id="bad").with_updates(location=None))
        reports.append(make_report(report_id="nan").with_updates(
            location=GeoPoint(longitude=float("nan"), latitude=12.971),
        ))

        assert cluster_reports(reports) == []

    def test_custom_config(self, cell_reports):
        reports = cell_reports("a", 12.971, 77.591, ["Pothole", "Garbage"])
        config = RiskClusteringConfig(min_reports=2)

        areas = cluster_reports(reports, config)

        assert len(areas) == 1
        assert areas[0].risk_score == 2 * 10 + 2 * 5

    def test_grid_cell_rounding(self, make_report):
        report = make_report(lat=12.9749, lon=77.5851)
        assert grid_cell(report) == (pytest.approx(12.97), pytest.approx(77.59))

    def test_to_dict_shape(self, cell_reports):
        area = cluster_reports(cell_reports("a", 12.971, 77.591, ["Pothole"] * 3))[0]
        payload = area.to_dict()

        assert payload["location"] == {"lat": area.latitude, "lng": area.longitude}
        assert payload["count"] == 3
        assert payload["types"] == {"Pothole": 3}
        assert payload["riskScore"] == 35


# ============================================================
# STORE-BACKED CLUSTERER
# ============================================================

class TestRiskAreaClusterer:

    def test_only_open_reports_counted(self, cell_reports):
        store = InMemoryReportStore(
            cell_reports("open", 12.971, 77.591, ["Pothole", "Pothole"])
            + cell_reports("done", 12.971, 77.591, ["Pothole"] * 3, status=ReportStatus.CLEARED)
        )

        assert RiskAreaClusterer(store).predict_high_risk_areas() == []

    def test_working_reports_counted(self, cell_reports):
        store = InMemoryReportStore(
            cell_reports("a", 12.971, 77.591, ["Pothole"] * 2)
            + cell_reports("b", 12.972, 77.592, ["Garbage"], status=ReportStatus.WORKING)
        )

        areas = RiskAreaClusterer(store).predict_high_risk_areas()

        assert len(areas) == 1
        assert areas[0].count == 3

    def test_store_failure_returns_empty(self):
        store = MagicMock(spec=ReportStore)
        store.scan.side_effect = StoreQueryError("scan failed", operation="scan")

        assert RiskAreaClusterer(store).predict_high_risk_areas() == []
