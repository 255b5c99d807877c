"""
Report Intelligence Engine - Package.

============================================================
PURPOSE
============================================================
Heuristic enrichment and analytics for citizen-submitted
civic issue reports (potholes, garbage, street lights,
water leaks).

============================================================
WHAT IT IS
============================================================
- Deterministic rule-based scoring of every new report
- Geospatial + text-similarity duplicate flagging
- Grid-based hotspot ranking of open reports
- Closed-form workforce and budget estimates from resolved
  reports

============================================================
WHAT IT IS NOT
============================================================
- NOT machine learning (no fitting, no validation)
- NOT an image classifier: category guesses use text only
- NOT an HTTP API

============================================================
COMPONENTS
============================================================
1. scoring:    priority score, sentiment, tags, classification
2. duplicates: DuplicateDetector
3. clustering: RiskAreaClusterer
4. predictor:  ResourcePredictor (immutable ModelSnapshot)
5. service:    ReportIntelligenceService facade
6. store / repository: ReportStore capability, in-memory and
   SQLAlchemy implementations

============================================================
USAGE
============================================================
    from report_intelligence import (
        InMemoryReportStore,
        ReportIntelligenceService,
        parse_report,
    )

    store = InMemoryReportStore()
    service = ReportIntelligenceService(store)

    report = parse_report({
        "title": "Burst pipe",
        "description": "Urgent water leak near the school",
        "report_type": "Water Leak",
        "location": {"type": "Point", "coordinates": [77.59, 12.97]},
    })

    enrichment = service.enrich_submission(report)
    stored = store.add(report.with_updates(
        id="r-1",
        priority_score=enrichment.priority_score,
        ai_tags=enrichment.ai_tags,
    ))
    duplicates = service.check_duplicates(stored, apply=True)

    service.train()
    prediction = service.get_predictions(stored)

============================================================
"""

from .types import (
    # Enums
    ReportType,
    ReportStatus,
    SentimentLabel,

    # Inputs
    GeoPoint,
    ReportComment,
    ReportSnapshot,

    # Outputs
    SentimentResult,
    ImageClassification,
    EnrichmentResult,
    DuplicateMatch,
    DuplicateCheckResult,
    RiskArea,
    SubModelWeights,
    ModelSnapshot,
    TrainingResult,
    ModelStats,
    PredictionResult,
    InsightsSummary,

    # Errors
    ReportIntelligenceError,
    InvalidReportError,
)

from .config import (
    PriorityScoringConfig,
    SentimentConfig,
    TaggingConfig,
    ClassificationConfig,
    DuplicateDetectionConfig,
    RiskClusteringConfig,
    PredictorConfig,
    ReportIntelligenceConfig,
    get_default_config,
)

from .scoring import (
    calculate_priority_score,
    analyze_sentiment,
    generate_tags,
    classify_image_from_report,
)

from .store import (
    ReportFilter,
    ReportStore,
    InMemoryReportStore,
    haversine_meters,
)

from .duplicates import DuplicateDetector, text_similarity
from .clustering import RiskAreaClusterer, cluster_reports
from .predictor import (
    ResourcePredictor,
    fit_model_snapshot,
    untrained_snapshot,
    predict_workforce,
    predict_budget,
    model_confidence,
)
from .service import ReportIntelligenceService
from .schemas import ReportPayload, LocationPayload, CommentPayload, parse_report


__all__ = [
    # Types
    "ReportType",
    "ReportStatus",
    "SentimentLabel",
    "GeoPoint",
    "ReportComment",
    "ReportSnapshot",
    "SentimentResult",
    "ImageClassification",
    "EnrichmentResult",
    "DuplicateMatch",
    "DuplicateCheckResult",
    "RiskArea",
    "SubModelWeights",
    "ModelSnapshot",
    "TrainingResult",
    "ModelStats",
    "PredictionResult",
    "InsightsSummary",
    "ReportIntelligenceError",
    "InvalidReportError",

    # Config
    "PriorityScoringConfig",
    "SentimentConfig",
    "TaggingConfig",
    "ClassificationConfig",
    "DuplicateDetectionConfig",
    "RiskClusteringConfig",
    "PredictorConfig",
    "ReportIntelligenceConfig",
    "get_default_config",

    # Scoring
    "calculate_priority_score",
    "analyze_sentiment",
    "generate_tags",
    "classify_image_from_report",

    # Store
    "ReportFilter",
    "ReportStore",
    "InMemoryReportStore",
    "haversine_meters",

    # Components
    "DuplicateDetector",
    "text_similarity",
    "RiskAreaClusterer",
    "cluster_reports",
    "ResourcePredictor",
    "fit_model_snapshot",
    "untrained_snapshot",
    "predict_workforce",
    "predict_budget",
    "model_confidence",
    "ReportIntelligenceService",

    # Schemas
    "ReportPayload",
    "LocationPayload",
    "CommentPayload",
    "parse_report",
]
