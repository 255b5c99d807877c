"""
Tests for the SQLAlchemy report repository.

Runs against an in-memory SQLite database.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from core.exceptions import StoreQueryError
from database.engine import Base
from database.models import ReportRecord
from report_intelligence.repository import SqlReportStore, record_to_snapshot
from report_intelligence.scoring import calculate_priority_score
from report_intelligence.service import ReportIntelligenceService
from report_intelligence.store import ReportFilter
from report_intelligence.types import GeoPoint, ReportComment, ReportStatus

from .conftest import BASE_LAT, BASE_LON


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def session():
    engine = create_engine("sqlite://", future=True)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(session):
    return SqlReportStore(session)


# ============================================================
# TESTS
# ============================================================

class TestSqlReportStore:
    """Test persistence and queries."""

    def test_save_and_get_round_trip(self, store, make_report, now):
        report = make_report(
            report_id="r-1",
            report_type="Garbage",
            title="Overflowing bin",
            description="Smells bad",
            address_text="Park Street",
            likes=frozenset({"u1", "u2"}),
            comments=(ReportComment(author_id="u3", text="Still there", created_at=now),),
            created_at=now - timedelta(days=1),
        )

        store.save_report(report)
        loaded = store.get_report("r-1")

        assert loaded.id == "r-1"
        assert loaded.report_type == "Garbage"
        assert loaded.address_text == "Park Street"
        assert loaded.location == GeoPoint(BASE_LON, BASE_LAT)
        assert loaded.likes == frozenset({"u1", "u2"})
        assert loaded.comments[0].text == "Still there"
        assert loaded.status == ReportStatus.PENDING
        assert loaded.created_at == now - timedelta(days=1)

    def test_save_generates_id(self, store, make_report):
        saved = store.save_report(make_report(report_id=None))
        assert saved.id is not None
        assert store.get_report(saved.id) is not None

    def test_save_with_enrichment(self, store, make_report, now):
        report = make_report(report_id="r-1", report_type="Water Leak", title="Leak", description="urgent")
        enrichment = ReportIntelligenceService(store).enrich_submission(report, now=now)

        saved = store.save_report(report, enrichment)
        record = store._session.get(ReportRecord, "r-1")

        assert saved.priority_score == enrichment.priority_score
        assert saved.ai_tags == enrichment.ai_tags
        assert record.sentiment_analysis["sentiment"] == "negative"
        assert record.ai_classification["predicted_type"] == "water leak"

    def test_save_requires_location(self, store, make_report):
        with pytest.raises(StoreQueryError):
            store.save_report(make_report().with_updates(location=None))

    def test_get_missing_report(self, store):
        assert store.get_report("missing") is None

    def test_query_near(self, store, make_report):
        store.save_report(make_report(report_id="near", lat=BASE_LAT + 0.0005))
        store.save_report(make_report(report_id="far", lat=BASE_LAT + 0.01))
        store.save_report(make_report(report_id="closest", lat=BASE_LAT + 0.0001))
        store.save_report(make_report(report_id="done", lat=BASE_LAT, status=ReportStatus.CLEARED))

        center = GeoPoint(BASE_LON, BASE_LAT)

        assert [r.id for r in store.query_near(center, 100)] == ["done", "closest", "near"]
        assert [r.id for r in store.query_near(center, 100, ReportFilter.active())] == ["closest", "near"]

    @pytest.mark.parametrize("center_lon", [179.9997, -179.9997])
    def test_query_near_across_antimeridian(self, store, make_report, center_lon):
        store.save_report(make_report(report_id="east", lon=179.9997, lat=0.0))
        store.save_report(make_report(report_id="west", lon=-179.9997, lat=0.0))
        store.save_report(make_report(report_id="far", lon=179.99, lat=0.0))

        center = GeoPoint(center_lon, 0.0)
        found = {r.id for r in store.query_near(center, 100)}

        assert found == {"east", "west"}
        assert store.count_near(center, 100) == 2
        assert store.count_near(center, 100, ReportFilter.active(exclude_id="near")) == 1
        assert len(store.query_near(center, 5000, limit=2)) == 2

    def test_query_near_invalid_center(self, store):
        with pytest.raises(StoreQueryError):
            store.query_near(GeoPoint(0.0, 100.0), 100)

    def test_scan_training_filter(self, store, make_report):
        store.save_report(make_report(
            report_id="ok", status=ReportStatus.CLEARED, assigned_workforce=2, assigned_budget=500.0,
        ))
        store.save_report(make_report(
            report_id="no-budget", status=ReportStatus.CLEARED, assigned_workforce=2,
        ))
        store.save_report(make_report(
            report_id="open", assigned_workforce=2, assigned_budget=500.0,
        ))

        assert [r.id for r in store.scan(ReportFilter.training())] == ["ok"]

    def test_mark_duplicate(self, store, make_report):
        store.save_report(make_report(report_id="old"))
        store.save_report(make_report(report_id="new"))
        store.save_report(make_report(report_id="other"))

        assert store.mark_duplicate("new", "old") is True
        assert store.mark_duplicate("new", "other") is False
        assert store.mark_duplicate("old", "old") is False
        assert store.mark_duplicate("missing", "old") is False

        assert store.get_report("new").duplicate_of == "old"
        assert store.get_report("old").is_duplicate is False
        assert store.count_duplicates() == 1

    def test_list_by_priority(self, store, make_report):
        for report_id, priority in [("a", 20), ("b", 80), ("c", 50)]:
            store.save_report(make_report(report_id=report_id, priority_score=priority))

        assert [r.id for r in store.list_by_priority(limit=2)] == ["b", "c"]

    def test_query_errors_are_wrapped(self):
        session = MagicMock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with pytest.raises(StoreQueryError) as exc_info:
            SqlReportStore(session).scan()

        assert exc_info.value.context["operation"] == "scan"

    def test_unknown_status_reads_as_pending(self, session):
        session.add(ReportRecord(
            id="legacy", title="Old", report_type="Other",
            longitude=BASE_LON, latitude=BASE_LAT, status="ARCHIVED",
        ))
        session.flush()

        snapshot = record_to_snapshot(session.get(ReportRecord, "legacy"))

        assert snapshot.status == ReportStatus.PENDING


class TestServiceOverSqlStore:
    """End-to-end submission flow on the SQL store."""

    def test_submission_flow(self, store, make_report, now):
        service = ReportIntelligenceService(store)

        first = make_report(report_id="first", title="Streetlight not working on 5th cross")
        store.save_report(first, service.enrich_submission(first, now=now))

        second = make_report(
            report_id="second",
            title="Streetlight not working on 5th cross road",
            lat=BASE_LAT + 0.0003,
        )
        enrichment = service.enrich_submission(second, now=now)
        saved = store.save_report(second, enrichment)
        result = service.check_duplicates(saved, apply=True)

        assert enrichment.priority_score == calculate_priority_score(second, nearby_reports=1, now=now)
        assert result.is_duplicate is True
        assert result.duplicate_of == "first"
        assert store.get_report("second").duplicate_of == "first"
        assert store.get_report("first").is_duplicate is False
