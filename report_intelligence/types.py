"""
Report Intelligence - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the report scoring and prediction engine.

The engine never owns reports. It operates on read-only
ReportSnapshot copies pulled from a store and produces
immutable result objects that callers attach to the stored
record.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable (frozen dataclasses)
- Enums for discrete state values
- to_dict() on every output produces the caller-facing shape
- Report type is kept as the raw string so unknown types
  fall back to defaults instead of failing

============================================================
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from core.exceptions import CivicPlatformError


# ============================================================
# ENUMS
# ============================================================


class ReportType(str, Enum):
    """Fixed set of report categories a citizen can submit."""

    POTHOLE = "Pothole"
    GARBAGE = "Garbage"
    STREET_LIGHT = "Street Light"
    WATER_LEAK = "Water Leak"
    OTHER = "Other"


class ReportStatus(str, Enum):
    """
    Report lifecycle status.

    CLEARED and REJECTED are terminal.
    """

    PENDING = "PENDING"
    WORKING = "WORKING"
    CLEARED = "CLEARED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.CLEARED, ReportStatus.REJECTED)

    @classmethod
    def active_statuses(cls) -> Tuple["ReportStatus", ...]:
        """Statuses of reports still waiting for, or under, work."""
        return tuple(status for status in cls if not status.is_terminal)


class SentimentLabel(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# ============================================================
# REPORT SNAPSHOT
# ============================================================


@dataclass(frozen=True)
class GeoPoint:
    """A (longitude, latitude) point, GeoJSON axis order."""

    longitude: float
    latitude: float

    @property
    def is_valid(self) -> bool:
        """Check coordinates are finite and within WGS84 bounds."""
        try:
            lon = float(self.longitude)
            lat = float(self.latitude)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return False
        return -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


@dataclass(frozen=True)
class ReportComment:
    author_id: str
    text: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReportSnapshot:
    """
    Read-only copy of a stored report.

    Only the fields the engine reads are carried. AI fields
    (priority_score, ai_tags, duplicate flags) are present so
    snapshots of already-enriched reports can be ranked and
    used for training.
    """

    id: Optional[str] = None
    report_type: str = ReportType.OTHER.value
    title: str = ""
    description: str = ""
    address_text: Optional[str] = None
    location: Optional[GeoPoint] = None
    created_at: Optional[datetime] = None
    status: ReportStatus = ReportStatus.PENDING

    likes: FrozenSet[str] = frozenset()
    comments: Tuple[ReportComment, ...] = ()

    assigned_workforce: int = 0
    assigned_budget: float = 0.0

    priority_score: Optional[int] = None
    ai_tags: Tuple[str, ...] = ()
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None

    @property
    def has_valid_location(self) -> bool:
        return self.location is not None and self.location.is_valid

    def with_updates(self, **changes: Any) -> "ReportSnapshot":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_summary(self) -> Dict[str, Any]:
        """Compact listing form used by dashboards."""
        return {
            "id": self.id,
            "title": self.title,
            "report_type": self.report_type,
            "status": self.status.value,
            "priority_score": self.priority_score,
            "location": self.location.to_dict() if self.location else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ============================================================
# SCORING OUTPUTS
# ============================================================


@dataclass(frozen=True)
class SentimentResult:
    sentiment: SentimentLabel = SentimentLabel.NEUTRAL
    score: float = 0.0
    positive_count: int = 0
    negative_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiment": self.sentiment.value,
            "score": self.score,
            "positiveCount": self.positive_count,
            "negativeCount": self.negative_count,
        }


@dataclass(frozen=True)
class ImageClassification:
    """Text-derived category guess (no image is inspected)."""

    predicted_type: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"predicted_type": self.predicted_type, "confidence": self.confidence}


@dataclass(frozen=True)
class EnrichmentResult:
    """
    AI fields attached to a report before it is persisted.

    degraded is True when enrichment failed and the defaults
    were substituted.
    """

    priority_score: int
    ai_tags: Tuple[str, ...]
    sentiment_analysis: SentimentResult
    ai_classification: ImageClassification
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority_score": self.priority_score,
            "ai_tags": list(self.ai_tags),
            "sentiment_analysis": self.sentiment_analysis.to_dict(),
            "ai_classification": self.ai_classification.to_dict(),
        }


# ============================================================
# DUPLICATE DETECTION OUTPUTS
# ============================================================


@dataclass(frozen=True)
class DuplicateMatch:
    report_id: str
    similarity: float
    reason: str
    title_similarity: float = 0.0
    description_similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "similarity": self.similarity,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DuplicateCheckResult:
    """Patch for the already-persisted report (new -> old only)."""

    is_duplicate: bool = False
    duplicate_of: Optional[str] = None
    matches: Tuple[DuplicateMatch, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_duplicate": self.is_duplicate,
            "duplicate_of": self.duplicate_of,
            "matches": [m.to_dict() for m in self.matches],
        }


# ============================================================
# RISK AREA OUTPUTS
# ============================================================


@dataclass(frozen=True)
class RiskArea:
    """A ~1.1 km grid cell holding at least three active reports."""

    latitude: float
    longitude: float
    count: int
    types: Dict[str, int] = field(default_factory=dict)
    risk_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": {"lat": self.latitude, "lng": self.longitude},
            "count": self.count,
            "types": dict(self.types),
            "riskScore": self.risk_score,
        }


# ============================================================
# PREDICTOR STATE AND OUTPUTS
# ============================================================


@dataclass(frozen=True)
class SubModelWeights:
    """
    Weights of one sub-model (workforce or budget).

    type_means is a read-only mapping; a new SubModelWeights is
    built on every training run instead of patching this one.
    """

    base_value: float
    priority_sensitivity: float
    type_means: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    trained: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.type_means, MappingProxyType):
            object.__setattr__(self, "type_means", MappingProxyType(dict(self.type_means)))

    def type_mean(self, report_type: str) -> Optional[float]:
        return self.type_means.get(report_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportType": dict(self.type_means),
            "priority": self.priority_sensitivity,
            "base": self.base_value,
            "trained": self.trained,
        }


@dataclass(frozen=True)
class ModelSnapshot:
    """
    Immutable predictor state.

    Workforce and budget sub-models are always trained together.
    """

    workforce: SubModelWeights
    budget: SubModelWeights
    samples: int = 0
    trained_at: Optional[datetime] = None

    @property
    def trained(self) -> bool:
        return self.workforce.trained and self.budget.trained

    @property
    def report_types(self) -> int:
        return len(self.workforce.type_means)


@dataclass(frozen=True)
class TrainingResult:
    trained: bool
    samples: int
    report_types: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"trained": self.trained, "samples": self.samples}
        if self.report_types is not None:
            payload["reportTypes"] = self.report_types
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class ModelStats:
    trained: bool
    confidence: float
    report_types: int
    workforce_weights: Dict[str, Any]
    budget_weights: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trained": self.trained,
            "confidence": self.confidence,
            "reportTypes": self.report_types,
            "workforceWeights": self.workforce_weights,
            "budgetWeights": self.budget_weights,
        }


@dataclass(frozen=True)
class PredictionResult:
    """
    Workforce/budget estimate plus the raw factors used.

    confidence is a UX signal of whether the model has been
    trained, not a probability.
    """

    predicted_workforce: int
    predicted_budget: int
    confidence: float
    report_type: str
    priority_score: int
    nearby_reports: int
    model_trained: bool
    model_stats: Optional[ModelStats] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "predictedWorkforce": self.predicted_workforce,
            "predictedBudget": self.predicted_budget,
            "confidence": self.confidence,
            "reasoning": {
                "factors": {
                    "reportType": self.report_type,
                    "priorityScore": self.priority_score,
                    "nearbyReports": self.nearby_reports,
                    "modelTrained": self.model_trained,
                }
            },
        }
        if self.model_stats is not None:
            payload["modelStats"] = self.model_stats.to_dict()
        return payload


# ============================================================
# INSIGHTS
# ============================================================


@dataclass(frozen=True)
class InsightsSummary:
    """Admin dashboard roll-up."""

    risk_areas: Tuple[RiskArea, ...]
    high_priority_reports: Tuple[ReportSnapshot, ...]
    sentiment_tally: Dict[str, int]
    duplicate_reports: int
    ai_features: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskAreas": [a.to_dict() for a in self.risk_areas],
            "highPriorityReports": [r.to_summary() for r in self.high_priority_reports],
            "sentimentAnalysis": dict(self.sentiment_tally),
            "duplicateReports": self.duplicate_reports,
            "aiFeatures": dict(self.ai_features),
        }


# ============================================================
# ERROR TYPES
# ============================================================


class ReportIntelligenceError(CivicPlatformError):
    """Base exception for report intelligence errors."""
    pass


class InvalidReportError(ReportIntelligenceError):
    """Raised at the edge when a raw report document cannot be parsed."""
    pass


def tally_template() -> Dict[str, int]:
    """Zeroed per-label counter."""
    return {label.value: 0 for label in SentimentLabel}

