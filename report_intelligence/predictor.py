"""
Report Intelligence - Resource Predictor.

============================================================
PURPOSE
============================================================
Estimates the workforce and budget a report will need from
resolved historical reports.

============================================================
WHAT IT IS NOT
============================================================
- NOT a statistical model: "training" is closed-form
  averaging, recomputed from scratch on every call
- NOT persisted: state lives for the process lifetime and is
  always rebuildable from the store
- Confidence is a UX signal (trained or not), NOT a
  probability or an error bound

============================================================
MODEL STATE
============================================================
ModelSnapshot is immutable. fit_model_snapshot() builds a new
one; ResourcePredictor swaps it in as a single reference
assignment so a prediction never sees half of one training
run and half of another. Workforce and budget sub-models are
always trained together.

    Untrained --train(>=10 samples)--> Trained
    Trained   --train(>=10 samples)--> Trained (new snapshot)
    any       --train(<10 samples)---> Untrained

============================================================
PREDICTION
============================================================
workforce = (type mean | 2)
          + priority/100 * sensitivity * 3
          + min(nearby * 0.5, 5)
          * complexity[type]            -> round, clamp [1, 20]

budget    = (type mean | 5000)
          + priority/100 * sensitivity * 10000
          + min(nearby * 2000, 50000)
          * complexity[type]            -> round to 100, clamp [1000, 500000]

============================================================
"""

import logging
import math
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from core.clock import now_utc

from .config import PredictorConfig
from .scoring import as_count, round_half_up
from .store import ReportFilter, ReportStore
from .types import (
    ModelSnapshot,
    ModelStats,
    PredictionResult,
    ReportSnapshot,
    SubModelWeights,
    TrainingResult,
)


logger = logging.getLogger(__name__)


# ============================================================
# PURE MODEL FUNCTIONS
# ============================================================


def effective_priority(report: ReportSnapshot, config: Optional[PredictorConfig] = None) -> int:
    """Stored priority, or the default when missing or zero."""
    cfg = config or PredictorConfig()
    return report.priority_score or cfg.default_priority


def untrained_snapshot(config: Optional[PredictorConfig] = None) -> ModelSnapshot:
    """Snapshot used before the first successful training run."""
    cfg = config or PredictorConfig()
    return ModelSnapshot(
        workforce=SubModelWeights(
            base_value=cfg.base_workforce,
            priority_sensitivity=cfg.default_workforce_priority_sensitivity,
        ),
        budget=SubModelWeights(
            base_value=cfg.base_budget,
            priority_sensitivity=cfg.default_budget_priority_sensitivity,
        ),
    )


def fit_model_snapshot(
    records: Iterable[ReportSnapshot],
    config: Optional[PredictorConfig] = None,
    trained_at: Optional[datetime] = None,
) -> ModelSnapshot:
    """
    Build a new model snapshot from historical reports.

    Only CLEARED reports with positive workforce and budget are
    used, at most training_limit of them. With fewer than
    min_training_samples the untrained snapshot is returned
    (carrying the sample count).

    Args:
        records: Historical reports
        config: Predictor configuration
        trained_at: Timestamp recorded on the snapshot

    Returns:
        New immutable ModelSnapshot
    """
    cfg = config or PredictorConfig()
    training_filter = ReportFilter.training()
    samples = [r for r in records if training_filter.matches(r)][:cfg.training_limit]

    if len(samples) < cfg.min_training_samples:
        return replace(untrained_snapshot(cfg), samples=len(samples))

    # Per-type means
    workforce_by_type: Dict[str, List[float]] = {}
    budget_by_type: Dict[str, List[float]] = {}
    for report in samples:
        workforce_by_type.setdefault(report.report_type, []).append(report.assigned_workforce)
        budget_by_type.setdefault(report.report_type, []).append(report.assigned_budget)

    workforce_means = {t: sum(v) / len(v) for t, v in workforce_by_type.items()}
    budget_means = {t: sum(v) / len(v) for t, v in budget_by_type.items()}

    # Priority sensitivity: priority-weighted mean / mean priority
    workforce_sensitivity = cfg.default_workforce_priority_sensitivity
    budget_sensitivity = cfg.default_budget_priority_sensitivity

    n = len(samples)
    priority_sum = 0.0
    priority_workforce_sum = 0.0
    priority_budget_sum = 0.0
    for report in samples:
        priority = effective_priority(report, cfg)
        priority_sum += priority
        priority_workforce_sum += priority * report.assigned_workforce
        priority_budget_sum += priority * report.assigned_budget

    avg_priority = priority_sum / n
    if avg_priority > 0:
        workforce_sensitivity = (priority_workforce_sum / n) / avg_priority
        budget_sensitivity = (priority_budget_sum / n) / avg_priority

    return ModelSnapshot(
        workforce=SubModelWeights(
            base_value=cfg.base_workforce,
            priority_sensitivity=workforce_sensitivity,
            type_means=workforce_means,
            trained=True,
        ),
        budget=SubModelWeights(
            base_value=cfg.base_budget,
            priority_sensitivity=budget_sensitivity,
            type_means=budget_means,
            trained=True,
        ),
        samples=n,
        trained_at=trained_at,
    )


def _starting_value(weights: SubModelWeights, report_type: str) -> float:
    type_mean = weights.type_mean(report_type)
    return type_mean if type_mean else weights.base_value


def predict_workforce(
    report: ReportSnapshot,
    snapshot: ModelSnapshot,
    nearby_reports: Any = 0,
    config: Optional[PredictorConfig] = None,
) -> int:
    """Workers needed for a report, always within [min_workforce, max_workforce]."""
    cfg = config or PredictorConfig()
    weights = snapshot.workforce

    workforce = _starting_value(weights, report.report_type)
    priority = effective_priority(report, cfg)
    workforce += (priority / 100) * weights.priority_sensitivity * cfg.workforce_priority_factor

    nearby = max(as_count(nearby_reports), 0.0)
    workforce += min(nearby * cfg.workforce_per_nearby, cfg.workforce_nearby_cap)

    workforce *= cfg.workforce_complexity.get(report.report_type, 1.0)

    if not math.isfinite(workforce):
        workforce = weights.base_value

    workforce = round_half_up(workforce)
    return int(min(max(workforce, cfg.min_workforce), cfg.max_workforce))


def predict_budget(
    report: ReportSnapshot,
    snapshot: ModelSnapshot,
    nearby_reports: Any = 0,
    config: Optional[PredictorConfig] = None,
) -> int:
    """Budget for a report, rounded to 100 and within [min_budget, max_budget]."""
    cfg = config or PredictorConfig()
    weights = snapshot.budget

    budget = _starting_value(weights, report.report_type)
    priority = effective_priority(report, cfg)
    budget += (priority / 100) * weights.priority_sensitivity * cfg.budget_priority_factor

    nearby = max(as_count(nearby_reports), 0.0)
    budget += min(nearby * cfg.budget_per_nearby, cfg.budget_nearby_cap)

    budget *= cfg.budget_complexity.get(report.report_type, 1.0)

    if not math.isfinite(budget):
        budget = weights.base_value

    budget = round_half_up(budget / cfg.budget_rounding) * cfg.budget_rounding
    return int(min(max(budget, cfg.min_budget), cfg.max_budget))


def model_confidence(snapshot: ModelSnapshot, config: Optional[PredictorConfig] = None) -> float:
    """
    Fixed confidence signal.

    0 unless both sub-models are trained, otherwise
    0.5 + 0.3 + 0.15 capped at 0.95.
    """
    cfg = config or PredictorConfig()
    if not snapshot.workforce.trained or not snapshot.budget.trained:
        return 0.0

    confidence = cfg.base_confidence
    if snapshot.workforce.trained:
        confidence += cfg.workforce_confidence_bonus
    if snapshot.budget.trained:
        confidence += cfg.budget_confidence_bonus
    return min(cfg.max_confidence, confidence)


def model_stats(snapshot: ModelSnapshot, config: Optional[PredictorConfig] = None) -> ModelStats:
    return ModelStats(
        trained=snapshot.trained,
        confidence=model_confidence(snapshot, config),
        report_types=snapshot.report_types,
        workforce_weights=snapshot.workforce.to_dict(),
        budget_weights=snapshot.budget.to_dict(),
    )


# ============================================================
# PREDICTOR SERVICE
# ============================================================


class ResourcePredictor:
    """
    Owns the current ModelSnapshot for a store.

    Safe to share between threads: readers take one snapshot
    reference per call and train() replaces it wholesale.
    """

    def __init__(self, store: ReportStore, config: Optional[PredictorConfig] = None):
        self._store = store
        self.config = config or PredictorConfig()
        self._snapshot = untrained_snapshot(self.config)
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> ModelSnapshot:
        with self._lock:
            return self._snapshot

    def _swap(self, snapshot: ModelSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def train(self) -> TrainingResult:
        """
        Retrain from resolved reports in the store.

        Returns:
            TrainingResult. trained=False with the sample count when
            there is not enough data; on a store failure the previous
            snapshot is kept and the error is reported.
        """
        try:
            records = self._store.scan(ReportFilter.training(), limit=self.config.training_limit)
        except Exception as e:
            logger.error(f"Error training model: {e}")
            return TrainingResult(trained=False, samples=0, error=str(e))

        snapshot = fit_model_snapshot(records, self.config, trained_at=now_utc())
        self._swap(snapshot)

        if not snapshot.trained:
            logger.info(
                f"Not enough data to train: {snapshot.samples} samples "
                f"(need {self.config.min_training_samples})"
            )
            return TrainingResult(trained=False, samples=snapshot.samples)

        logger.info(
            f"Model trained on {snapshot.samples} samples across {snapshot.report_types} report types"
        )
        return TrainingResult(trained=True, samples=snapshot.samples, report_types=snapshot.report_types)

    def predict_workforce(self, report: ReportSnapshot, nearby_reports: Any = 0) -> int:
        return predict_workforce(report, self.snapshot, nearby_reports, self.config)

    def predict_budget(self, report: ReportSnapshot, nearby_reports: Any = 0) -> int:
        return predict_budget(report, self.snapshot, nearby_reports, self.config)

    def confidence(self) -> float:
        return model_confidence(self.snapshot, self.config)

    def get_stats(self) -> ModelStats:
        return model_stats(self.snapshot, self.config)

    def count_nearby(self, report: ReportSnapshot) -> int:
        """
        Reports within the nearby radius, excluding the report itself.

        Any failure counts as 0.
        """
        if not report.has_valid_location:
            return 0
        try:
            return self._store.count_near(
                report.location,
                self.config.nearby_radius_meters,
                ReportFilter(exclude_id=report.id),
            )
        except Exception as e:
            logger.warning(f"Error getting nearby reports for prediction: {e}")
            return 0

    def get_predictions(self, report: ReportSnapshot) -> PredictionResult:
        """Workforce, budget, confidence and the factors behind them."""
        nearby_reports = self.count_nearby(report)
        snapshot = self.snapshot

        return PredictionResult(
            predicted_workforce=predict_workforce(report, snapshot, nearby_reports, self.config),
            predicted_budget=predict_budget(report, snapshot, nearby_reports, self.config),
            confidence=model_confidence(snapshot, self.config),
            report_type=report.report_type,
            priority_score=effective_priority(report, self.config),
            nearby_reports=nearby_reports,
            model_trained=snapshot.workforce.trained,
            model_stats=model_stats(snapshot, self.config),
        )
