"""
Report Intelligence - Service.

============================================================
PURPOSE
============================================================
Single entry point wiring the scoring primitives, duplicate
detector, risk clusterer and resource predictor to one store.

============================================================
SUBMISSION FLOW
============================================================
1. enrich_submission(report)  -> AI fields, before persisting
2. caller persists the report
3. check_duplicates(report)   -> best-effort duplicate patch
                                 (new report -> old report only)

Enrichment never blocks a submission: any failure yields the
documented default values.

============================================================
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from .clustering import RiskAreaClusterer
from .config import ReportIntelligenceConfig, get_default_config
from .duplicates import DuplicateDetector
from .predictor import ResourcePredictor
from .scoring import (
    analyze_sentiment,
    calculate_priority_score,
    classify_image_from_report,
    generate_tags,
)
from .store import ReportFilter, ReportStore
from .types import (
    DuplicateCheckResult,
    EnrichmentResult,
    ImageClassification,
    InsightsSummary,
    ModelStats,
    PredictionResult,
    ReportSnapshot,
    RiskArea,
    SentimentResult,
    TrainingResult,
    tally_template,
)


logger = logging.getLogger(__name__)


INSIGHTS_TOP_REPORTS = 10

AI_FEATURES: Dict[str, str] = {
    "priorityScoring": "Active",
    "duplicateDetection": "Active",
    "sentimentAnalysis": "Active",
    "imageClassification": "Active",
    "predictiveAnalytics": "Active",
}


def default_enrichment(report: ReportSnapshot, priority_score: int = 50) -> EnrichmentResult:
    """Values stored when enrichment fails."""
    return EnrichmentResult(
        priority_score=priority_score,
        ai_tags=(),
        sentiment_analysis=SentimentResult(),
        ai_classification=ImageClassification(predicted_type=report.report_type, confidence=0),
        degraded=True,
    )


class ReportIntelligenceService:
    """
    Facade over the report intelligence components.

    One instance per store. The predictor state lives on the
    instance, so share the service to share the trained model.
    """

    def __init__(self, store: ReportStore, config: Optional[ReportIntelligenceConfig] = None):
        self._store = store
        self.config = config or get_default_config()

        self.detector = DuplicateDetector(store, self.config.duplicates)
        self.clusterer = RiskAreaClusterer(store, self.config.clustering)
        self.predictor = ResourcePredictor(store, self.config.predictor)

        logger.info(f"Report intelligence service initialized (engine v{self.config.engine_version})")

    @property
    def store(self) -> ReportStore:
        return self._store

    # --------------------------------------------------------
    # SUBMISSION
    # --------------------------------------------------------

    def enrich_submission(self, report: ReportSnapshot, now: Optional[datetime] = None) -> EnrichmentResult:
        """
        Compute the AI fields attached to a new report.

        Args:
            report: The submitted report (not yet persisted)
            now: Reference time for the age factor

        Returns:
            EnrichmentResult, degraded=True when defaults were used
        """
        nearby_reports = self.predictor.count_nearby(report)

        try:
            priority_score = calculate_priority_score(
                report,
                nearby_reports=nearby_reports,
                now=now,
                config=self.config.priority,
            )
            ai_tags = generate_tags(report, self.config.tagging)
            sentiment = analyze_sentiment(
                f"{report.title or ''} {report.description or ''}",
                self.config.sentiment,
            )
            classification = classify_image_from_report(report, self.config.classification)
        except Exception as e:
            logger.error(f"AI enrichment failed, storing defaults: {e}")
            return default_enrichment(report, self.config.priority.fallback_score)

        return EnrichmentResult(
            priority_score=priority_score,
            ai_tags=tuple(ai_tags),
            sentiment_analysis=sentiment,
            ai_classification=classification,
        )

    def check_duplicates(self, report: ReportSnapshot, apply: bool = False) -> DuplicateCheckResult:
        """
        Duplicate pass for an already persisted report.

        Args:
            report: The newly persisted report
            apply: Write the top match to the store via mark_duplicate

        Returns:
            DuplicateCheckResult for the new report only
        """
        matches = self.detector.detect(report)
        if not matches:
            return DuplicateCheckResult()

        best = matches[0]
        if apply and report.id is not None:
            try:
                self._store.mark_duplicate(report.id, best.report_id)
            except Exception as e:
                logger.error(f"Failed to mark report {report.id} as duplicate: {e}")

        return DuplicateCheckResult(
            is_duplicate=True,
            duplicate_of=best.report_id,
            matches=tuple(matches),
        )

    # --------------------------------------------------------
    # PREDICTION
    # --------------------------------------------------------

    def train(self) -> TrainingResult:
        return self.predictor.train()

    def get_predictions(self, report: ReportSnapshot) -> PredictionResult:
        return self.predictor.get_predictions(report)

    def get_model_stats(self) -> ModelStats:
        return self.predictor.get_stats()

    def train_message(self, result: TrainingResult) -> str:
        """Operator-facing text for a training outcome."""
        if result.trained:
            return f"Model trained successfully on {result.samples} samples"
        if result.error is not None:
            return f"Training failed: {result.error}"
        return (
            f"Not enough data to train. Need at least {self.config.predictor.min_training_samples} "
            f"cleared reports with workforce and budget."
        )

    # --------------------------------------------------------
    # DASHBOARD
    # --------------------------------------------------------

    def predict_high_risk_areas(self) -> List[RiskArea]:
        return self.clusterer.predict_high_risk_areas()

    def high_priority_reports(self, limit: int = 50) -> List[ReportSnapshot]:
        """Reports of any status ordered by stored priority, highest first."""
        return self._store.list_by_priority(limit=limit)

    def comment_sentiment_tally(self) -> Dict[str, int]:
        """Sentiment label counts over every comment in the store."""
        tally = tally_template()
        for report in self._store.scan(ReportFilter()):
            for comment in report.comments:
                label = analyze_sentiment(comment.text, self.config.sentiment).sentiment
                tally[label.value] += 1
        return tally

    def get_insights(self) -> InsightsSummary:
        """
        Admin dashboard roll-up.

        Risk areas degrade to an empty list on store failure; the
        other sections propagate store errors.
        """
        summary = InsightsSummary(
            risk_areas=tuple(self.predict_high_risk_areas()),
            high_priority_reports=tuple(self.high_priority_reports(limit=INSIGHTS_TOP_REPORTS)),
            sentiment_tally=self.comment_sentiment_tally(),
            duplicate_reports=self._store.count_duplicates(),
            ai_features=dict(AI_FEATURES),
        )
        logger.debug(
            f"Insights: {len(summary.risk_areas)} risk areas, "
            f"{summary.duplicate_reports} duplicates"
        )
        return summary
