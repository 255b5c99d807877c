"""
Tests for the store capability and the in-memory store.
"""

import pytest

from core.exceptions import StoreQueryError
from report_intelligence.store import (
    InMemoryReportStore,
    ReportFilter,
    bounding_box,
    haversine_meters,
    longitude_ranges,
)
from report_intelligence.types import GeoPoint, ReportStatus

from .conftest import BASE_LAT, BASE_LON


class TestGeometry:

    def test_one_degree_of_latitude(self):
        distance = haversine_meters(GeoPoint(0.0, 0.0), GeoPoint(0.0, 1.0))
        assert distance == pytest.approx(111195.08, rel=1e-4)

    def test_zero_distance(self):
        point = GeoPoint(BASE_LON, BASE_LAT)
        assert haversine_meters(point, point) == 0.0

    def test_bounding_box_contains_radius(self):
        center = GeoPoint(BASE_LON, BASE_LAT)
        min_lon, min_lat, max_lon, max_lat = bounding_box(center, 500)

        assert min_lon < BASE_LON < max_lon
        assert min_lat < BASE_LAT < max_lat
        edge = GeoPoint(BASE_LON, max_lat)
        assert haversine_meters(center, edge) == pytest.approx(500, rel=1e-6)

    def test_bounding_box_clamped_near_pole(self):
        min_lon, min_lat, max_lon, max_lat = bounding_box(GeoPoint(0.0, 89.9999), 100000)
        assert max_lat == 90.0
        assert longitude_ranges(min_lon, max_lon) == [(-180.0, 180.0)]

    def test_longitude_ranges_inside_bounds(self):
        assert longitude_ranges(77.5, 77.6) == [(77.5, 77.6)]

    def test_longitude_ranges_wrap_east(self):
        low, high = longitude_ranges(179.9, 180.1)

        assert low == (179.9, 180.0)
        assert high[0] == -180.0
        assert high[1] == pytest.approx(-179.9)

    def test_longitude_ranges_wrap_west(self):
        low, high = longitude_ranges(-180.1, -179.9)

        assert low[0] == pytest.approx(179.9)
        assert low[1] == 180.0
        assert high == (-180.0, -179.9)


class TestReportFilter:

    def test_active_statuses_are_non_terminal(self):
        assert ReportStatus.active_statuses() == (ReportStatus.PENDING, ReportStatus.WORKING)
        assert ReportStatus.CLEARED.is_terminal and ReportStatus.REJECTED.is_terminal

    def test_active_filter(self, make_report):
        active = ReportFilter.active(exclude_id="r-2")

        assert active.matches(make_report(report_id="r-1"))
        assert active.matches(make_report(report_id="r-1", status=ReportStatus.WORKING))
        assert not active.matches(make_report(report_id="r-2"))
        assert not active.matches(make_report(report_id="r-1", status=ReportStatus.CLEARED))

    def test_training_filter(self, make_report):
        training = ReportFilter.training()

        assert training.matches(make_report(
            status=ReportStatus.CLEARED, assigned_workforce=3, assigned_budget=1000.0,
        ))
        assert not training.matches(make_report(
            status=ReportStatus.CLEARED, assigned_workforce=3, assigned_budget=0.0,
        ))
        assert not training.matches(make_report(
            status=ReportStatus.REJECTED, assigned_workforce=3, assigned_budget=1000.0,
        ))

    def test_type_filter(self, make_report):
        only_garbage = ReportFilter(report_type="Garbage")

        assert only_garbage.matches(make_report(report_type="Garbage"))
        assert not only_garbage.matches(make_report(report_type="Pothole"))


class TestInMemoryReportStore:

    @pytest.fixture
    def store(self, make_report):
        return InMemoryReportStore([
            make_report(report_id="far", lat=BASE_LAT + 0.004),
            make_report(report_id="near", lat=BASE_LAT + 0.0005),
            make_report(report_id="closed", lat=BASE_LAT + 0.0001, status=ReportStatus.CLEARED),
            make_report(report_id="nowhere").with_updates(location=None),
        ])

    def test_query_near_orders_by_distance(self, store):
        results = store.query_near(GeoPoint(BASE_LON, BASE_LAT), 1000)
        assert [r.id for r in results] == ["closed", "near", "far"]

    def test_query_near_radius_and_filter(self, store):
        results = store.query_near(GeoPoint(BASE_LON, BASE_LAT), 100, ReportFilter.active())
        assert [r.id for r in results] == ["near"]

    def test_query_near_limit(self, store):
        results = store.query_near(GeoPoint(BASE_LON, BASE_LAT), 1000, limit=2)
        assert len(results) == 2

    def test_query_near_invalid_center(self, store):
        with pytest.raises(StoreQueryError):
            store.query_near(GeoPoint(500.0, 0.0), 100)

    def test_count_near(self, store):
        assert store.count_near(GeoPoint(BASE_LON, BASE_LAT), 1000) == 3

    def test_scan(self, store):
        assert len(store.scan()) == 4
        assert [r.id for r in store.scan(ReportFilter.active())] == ["far", "near", "nowhere"]
        assert len(store.scan(limit=1)) == 1

    def test_mark_duplicate_is_write_once(self, store):
        assert store.mark_duplicate("near", "far") is True
        assert store.mark_duplicate("near", "closed") is False

        near = store.get("near")
        assert near.is_duplicate is True
        assert near.duplicate_of == "far"
        assert store.get("far").is_duplicate is False

    def test_mark_duplicate_refuses_self_reference(self, store):
        assert store.mark_duplicate("near", "near") is False
        assert store.get("near").is_duplicate is False

    def test_mark_duplicate_unknown_report(self, store):
        assert store.mark_duplicate("missing", "near") is False

    def test_list_by_priority_and_count_duplicates(self, make_report):
        store = InMemoryReportStore([
            make_report(report_id="low", priority_score=10),
            make_report(report_id="high", priority_score=90),
            make_report(report_id="none", priority_score=None, is_duplicate=True),
        ])

        assert [r.id for r in store.list_by_priority(limit=2)] == ["high", "low"]
        assert store.count_duplicates() == 1
