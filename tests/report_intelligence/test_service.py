"""
Tests for the Report Intelligence Service facade.
"""

from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import StoreQueryError, StoreUnavailableError
from report_intelligence.service import AI_FEATURES, ReportIntelligenceService
from report_intelligence.store import InMemoryReportStore, ReportStore
from report_intelligence.types import (
    ReportComment,
    ReportStatus,
    SentimentLabel,
    TrainingResult,
)

from .conftest import BASE_LAT


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def store():
    return InMemoryReportStore()


@pytest.fixture
def service(store):
    return ReportIntelligenceService(store)


@pytest.fixture
def submission(make_report):
    return make_report(
        report_id="new",
        report_type="Water Leak",
        title="Burst pipe",
        description="urgent water leak near school",
        address_text="Main Road near School",
    )


# ============================================================
# ENRICHMENT
# ============================================================

class TestEnrichSubmission:

    def test_enrichment_fields(self, service, store, make_report, submission, now):
        for i in range(3):
            store.add(make_report(report_id=f"n-{i}", lat=BASE_LAT + 0.001 * (i + 1)))

        result = service.enrich_submission(submission, now=now)

        # 30 + 3 nearby * 2 + 1 keyword * 2
        assert result.priority_score == 38
        assert list(result.ai_tags) == ["street", "school", "urgent", "water-related", "water-leak"]
        assert result.sentiment_analysis.sentiment == SentimentLabel.NEGATIVE
        assert result.ai_classification.predicted_type == "water leak"
        assert result.ai_classification.confidence == 100
        assert result.degraded is False

    def test_nearby_failure_counts_as_zero(self, submission, now):
        store = MagicMock(spec=ReportStore)
        store.count_near.side_effect = StoreUnavailableError("store down")

        result = ReportIntelligenceService(store).enrich_submission(submission, now=now)

        assert result.priority_score == 32
        assert result.degraded is False

    def test_failure_falls_back_to_defaults(self, service, submission, now):
        with patch(
            "report_intelligence.service.calculate_priority_score",
            side_effect=RuntimeError("boom"),
        ):
            result = service.enrich_submission(submission, now=now)

        assert result.degraded is True
        assert result.priority_score == 50
        assert result.ai_tags == ()
        assert result.sentiment_analysis.sentiment == SentimentLabel.NEUTRAL
        assert result.sentiment_analysis.score == 0
        assert result.ai_classification.predicted_type == "Water Leak"
        assert result.ai_classification.confidence == 0

    def test_to_dict(self, service, submission, now):
        payload = service.enrich_submission(submission, now=now).to_dict()

        assert set(payload) == {"priority_score", "ai_tags", "sentiment_analysis", "ai_classification"}
        assert payload["sentiment_analysis"]["sentiment"] == "negative"


# ============================================================
# DUPLICATES
# ============================================================

class TestCheckDuplicates:

    def test_apply_patches_new_report_only(self, service, store, make_report):
        store.add(make_report(report_id="old", title="Garbage dumped near park gate"))
        new = store.add(make_report(
            report_id="new",
            title="Garbage dumped near park gate again",
            lat=BASE_LAT + 0.0002,
        ))

        result = service.check_duplicates(new, apply=True)

        assert result.is_duplicate is True
        assert result.duplicate_of == "old"
        assert store.get("new").duplicate_of == "old"
        assert store.get("old").is_duplicate is False
        assert store.get("old").duplicate_of is None

    def test_without_apply_store_untouched(self, service, store, make_report):
        store.add(make_report(report_id="old", title="Garbage dumped near park gate"))
        new = store.add(make_report(report_id="new", title="Garbage dumped near park gate"))

        result = service.check_duplicates(new)

        assert result.is_duplicate is True
        assert store.get("new").is_duplicate is False

    def test_no_match(self, service, submission):
        result = service.check_duplicates(submission, apply=True)

        assert result.is_duplicate is False
        assert result.duplicate_of is None
        assert result.to_dict() == {"is_duplicate": False, "duplicate_of": None, "matches": []}

    def test_mark_failure_is_logged_not_raised(self, make_report):
        old = make_report(report_id="old", title="Same title")
        store = MagicMock(spec=ReportStore)
        store.query_near.return_value = [old]
        store.mark_duplicate.side_effect = StoreQueryError("write failed")

        result = ReportIntelligenceService(store).check_duplicates(
            make_report(report_id="new", title="Same title"),
            apply=True,
        )

        assert result.duplicate_of == "old"


# ============================================================
# TRAINING AND DASHBOARD
# ============================================================

class TestTrainingAndInsights:

    def test_train_message(self, service):
        assert service.train_message(TrainingResult(trained=True, samples=12)) == (
            "Model trained successfully on 12 samples"
        )
        assert service.train_message(TrainingResult(trained=False, samples=3)).startswith(
            "Not enough data to train. Need at least 10"
        )
        assert "db down" in service.train_message(TrainingResult(trained=False, samples=0, error="db down"))

    def test_train_and_predict(self, service, store, make_report):
        for i in range(10):
            store.add(make_report(
                report_id=f"done-{i}",
                status=ReportStatus.CLEARED,
                assigned_workforce=4,
                assigned_budget=8000.0,
                priority_score=50,
                lat=BASE_LAT + 1,
            ))

        assert service.train().trained is True
        prediction = service.get_predictions(make_report(report_id="x", priority_score=50))

        assert prediction.predicted_workforce == 12
        assert service.get_model_stats().trained is True

    def test_high_priority_reports(self, service, store, make_report):
        for report_id, priority in [("a", 10), ("b", 90), ("c", 40)]:
            store.add(make_report(report_id=report_id, priority_score=priority, status=ReportStatus.CLEARED))

        assert [r.id for r in service.high_priority_reports(limit=2)] == ["b", "c"]

    def test_insights(self, service, store, make_report):
        comments = (
            ReportComment(author_id="u1", text="Thanks, fixed fast"),
            ReportComment(author_id="u2", text="Still broken and dangerous"),
            ReportComment(author_id="u3", text="Any update?"),
        )
        for i in range(3):
            store.add(make_report(
                report_id=f"r-{i}",
                lat=BASE_LAT + 0.0005 * i,
                priority_score=10 * i,
                comments=comments if i == 0 else (),
                is_duplicate=(i == 2),
            ))

        insights = service.get_insights().to_dict()

        assert len(insights["riskAreas"]) == 1
        assert [r["id"] for r in insights["highPriorityReports"]] == ["r-2", "r-1", "r-0"]
        assert insights["sentimentAnalysis"] == {"positive": 1, "negative": 1, "neutral": 1}
        assert insights["duplicateReports"] == 1
        assert insights["aiFeatures"] == AI_FEATURES

    def test_risk_areas_degrade_on_store_failure(self):
        store = MagicMock(spec=ReportStore)
        store.scan.side_effect = StoreUnavailableError("store down")

        assert ReportIntelligenceService(store).predict_high_risk_areas() == []
