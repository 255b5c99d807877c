"""
Report Intelligence - Configuration.

============================================================
PURPOSE
============================================================
Every constant used by the scoring, duplicate, clustering
and prediction components lives here as an immutable
configuration value.

The defaults reproduce the production heuristics exactly.
Changing any of them changes user-visible scores, so
overrides are meant for experiments and tests.

============================================================
SOURCES
============================================================
1. get_default_config()           - built-in values
2. ReportIntelligenceConfig.from_env()  - CIVIC_* variables
   (a .env file is loaded first)
3. ReportIntelligenceConfig.from_yaml() - YAML file with the
   same section names as to_dict()

============================================================
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv

from core.exceptions import ConfigurationError


# ============================================================
# PRIORITY SCORING
# ============================================================


@dataclass(frozen=True)
class PriorityScoringConfig:
    """
    Five-factor priority score, each factor capped on its own.

    ============================================================
    FACTORS
    ============================================================
    1. Type base score (10-30)
    2. Density: nearby reports * 2, max 25
    3. Engagement: likes * 2 + comments * 3, max 20
    4. Age: days since creation * 2, max 15
    5. Urgency keywords in description: 2 each, max 10

    ============================================================
    """

    type_scores: Mapping[str, int] = field(default_factory=lambda: {
        "Water Leak": 30,
        "Pothole": 25,
        "Street Light": 20,
        "Garbage": 15,
        "Other": 10,
    })
    default_type_score: int = 10

    density_per_report: float = 2.0
    density_cap: float = 25.0

    points_per_like: float = 2.0
    points_per_comment: float = 3.0
    engagement_cap: float = 20.0

    points_per_day: float = 2.0
    age_cap: float = 15.0

    urgent_keywords: Tuple[str, ...] = (
        "urgent", "emergency", "dangerous", "critical",
        "immediate", "severe", "broken", "damaged",
    )
    points_per_keyword: float = 2.0
    keyword_cap: float = 10.0

    fallback_score: int = 50
    min_score: int = 0
    max_score: int = 100


# ============================================================
# SENTIMENT
# ============================================================


@dataclass(frozen=True)
class SentimentConfig:
    positive_words: Tuple[str, ...] = (
        "good", "great", "excellent", "fixed", "resolved", "thanks",
        "thank", "appreciate", "helpful", "fast", "quick",
    )
    negative_words: Tuple[str, ...] = (
        "bad", "terrible", "awful", "broken", "damaged", "urgent",
        "dangerous", "critical", "failed", "slow", "delayed",
    )
    positive_threshold: float = 0.2
    negative_threshold: float = -0.2


# ============================================================
# TAGGING
# ============================================================


@dataclass(frozen=True)
class TaggingConfig:
    """Substring rules: tag -> trigger words."""

    address_rules: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("street", ("street", "road")),
        ("park", ("park",)),
        ("school", ("school",)),
        ("hospital", ("hospital",)),
    )
    content_rules: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("urgent", ("urgent", "emergency")),
        ("safety-hazard", ("safety", "danger")),
        ("water-related", ("water",)),
        ("traffic", ("traffic", "road")),
        ("health", ("health", "hygiene")),
    )


# ============================================================
# CLASSIFICATION
# ============================================================


@dataclass(frozen=True)
class ClassificationConfig:
    """Keyword lists per candidate type, evaluated in this order."""

    keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("pothole", ("pothole", "hole", "road", "crack", "damage")),
        ("garbage", ("garbage", "trash", "waste", "litter", "dump")),
        ("street light", ("light", "lamp", "dark", "illumination", "bulb")),
        ("water leak", ("water", "leak", "pipe", "flood", "drainage")),
    )
    default_type: str = "Other"
    hits_for_full_confidence: float = 3.0


# ============================================================
# DUPLICATE DETECTION
# ============================================================


@dataclass(frozen=True)
class DuplicateDetectionConfig:
    radius_meters: float = 100.0
    candidate_limit: int = 10
    similarity_threshold: float = 0.7


# ============================================================
# RISK CLUSTERING
# ============================================================


@dataclass(frozen=True)
class RiskClusteringConfig:
    """
    Grid-cell clustering.

    Two decimal places of latitude/longitude is roughly a 1.1 km
    cell. Reports straddling a cell boundary land in different
    buckets; this granularity is what the dashboards expect.
    """

    grid_decimals: int = 2
    min_reports: int = 3
    points_per_report: int = 10
    points_per_type: int = 5
    max_areas: int = 10


# ============================================================
# RESOURCE PREDICTOR
# ============================================================


@dataclass(frozen=True)
class PredictorConfig:
    """
    Closed-form averaging model for workforce and budget.

    The untrained priority sensitivities are the values used
    before the first successful training run.
    """

    training_limit: int = 1000
    min_training_samples: int = 10
    default_priority: int = 50
    nearby_radius_meters: float = 500.0

    # Workforce
    base_workforce: float = 2.0
    default_workforce_priority_sensitivity: float = 0.5
    workforce_priority_factor: float = 3.0
    workforce_per_nearby: float = 0.5
    workforce_nearby_cap: float = 5.0
    workforce_complexity: Mapping[str, float] = field(default_factory=lambda: {
        "Water Leak": 1.5,
        "Pothole": 1.2,
        "Street Light": 1.0,
        "Garbage": 0.8,
        "Other": 1.0,
    })
    min_workforce: int = 1
    max_workforce: int = 20

    # Budget
    base_budget: float = 5000.0
    default_budget_priority_sensitivity: float = 0.8
    budget_priority_factor: float = 10000.0
    budget_per_nearby: float = 2000.0
    budget_nearby_cap: float = 50000.0
    budget_complexity: Mapping[str, float] = field(default_factory=lambda: {
        "Water Leak": 2.0,
        "Pothole": 1.5,
        "Street Light": 1.2,
        "Garbage": 1.0,
        "Other": 1.0,
    })
    budget_rounding: int = 100
    min_budget: int = 1000
    max_budget: int = 500000

    # Confidence signal
    base_confidence: float = 0.5
    workforce_confidence_bonus: float = 0.3
    budget_confidence_bonus: float = 0.15
    max_confidence: float = 0.95


# ============================================================
# ENGINE CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class ReportIntelligenceConfig:
    """Complete configuration for the report intelligence engine."""

    priority: PriorityScoringConfig = field(default_factory=PriorityScoringConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)
    tagging: TaggingConfig = field(default_factory=TaggingConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    duplicates: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)
    clustering: RiskClusteringConfig = field(default_factory=RiskClusteringConfig)
    predictor: PredictorConfig = field(default_factory=PredictorConfig)

    engine_version: str = "1.0.0"

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "ReportIntelligenceConfig":
        """
        Build configuration from environment variables.

        Recognised variables:
            CIVIC_DUPLICATE_RADIUS_METERS
            CIVIC_DUPLICATE_CANDIDATE_LIMIT
            CIVIC_DUPLICATE_SIMILARITY_THRESHOLD
            CIVIC_RISK_MIN_REPORTS
            CIVIC_RISK_MAX_AREAS
            CIVIC_NEARBY_RADIUS_METERS
            CIVIC_TRAINING_LIMIT
            CIVIC_TRAINING_MIN_SAMPLES
        """
        load_dotenv(env_file)
        config = cls()

        duplicates = config.duplicates
        if os.getenv("CIVIC_DUPLICATE_RADIUS_METERS"):
            duplicates = replace(duplicates, radius_meters=_env_number("CIVIC_DUPLICATE_RADIUS_METERS", float))
        if os.getenv("CIVIC_DUPLICATE_CANDIDATE_LIMIT"):
            duplicates = replace(duplicates, candidate_limit=_env_number("CIVIC_DUPLICATE_CANDIDATE_LIMIT", int))
        if os.getenv("CIVIC_DUPLICATE_SIMILARITY_THRESHOLD"):
            duplicates = replace(
                duplicates,
                similarity_threshold=_env_number("CIVIC_DUPLICATE_SIMILARITY_THRESHOLD", float),
            )

        clustering = config.clustering
        if os.getenv("CIVIC_RISK_MIN_REPORTS"):
            clustering = replace(clustering, min_reports=_env_number("CIVIC_RISK_MIN_REPORTS", int))
        if os.getenv("CIVIC_RISK_MAX_AREAS"):
            clustering = replace(clustering, max_areas=_env_number("CIVIC_RISK_MAX_AREAS", int))

        predictor = config.predictor
        if os.getenv("CIVIC_NEARBY_RADIUS_METERS"):
            predictor = replace(predictor, nearby_radius_meters=_env_number("CIVIC_NEARBY_RADIUS_METERS", float))
        if os.getenv("CIVIC_TRAINING_LIMIT"):
            predictor = replace(predictor, training_limit=_env_number("CIVIC_TRAINING_LIMIT", int))
        if os.getenv("CIVIC_TRAINING_MIN_SAMPLES"):
            predictor = replace(predictor, min_training_samples=_env_number("CIVIC_TRAINING_MIN_SAMPLES", int))

        return replace(config, duplicates=duplicates, clustering=clustering, predictor=predictor)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReportIntelligenceConfig":
        """
        Load configuration from a YAML file.

        Only scalar settings are read; keyword lists and lookup
        tables keep their defaults unless given as lists/mappings.
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping", actual_value=data)

        config = cls()
        sections = {
            "priority": config.priority,
            "sentiment": config.sentiment,
            "tagging": config.tagging,
            "classification": config.classification,
            "duplicates": config.duplicates,
            "clustering": config.clustering,
            "predictor": config.predictor,
        }

        updated = {}
        for name, section in sections.items():
            if name in data:
                updated[name] = _apply_overrides(section, data[name], name)

        if "engine_version" in data:
            updated["engine_version"] = str(data["engine_version"])

        return replace(config, **updated)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and stats output."""
        return {
            "priority": _section_to_dict(self.priority),
            "sentiment": _section_to_dict(self.sentiment),
            "tagging": _section_to_dict(self.tagging),
            "classification": _section_to_dict(self.classification),
            "duplicates": _section_to_dict(self.duplicates),
            "clustering": _section_to_dict(self.clustering),
            "predictor": _section_to_dict(self.predictor),
            "engine_version": self.engine_version,
        }


# ============================================================
# HELPERS
# ============================================================


def _env_number(name: str, cast):
    raw = os.getenv(name)
    try:
        return cast(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}", config_key=name, actual_value=raw, cause=e)


def _apply_overrides(section, values: Any, section_name: str):
    if not isinstance(values, dict):
        raise ConfigurationError(
            f"Config section '{section_name}' must be a mapping",
            config_key=section_name,
            actual_value=values,
        )

    known = {f.name: f for f in fields(section)}
    changes = {}
    for key, value in values.items():
        if key not in known:
            continue
        current = getattr(section, key)
        if isinstance(current, tuple):
            changes[key] = tuple(tuple(v) if isinstance(v, list) else v for v in value)
        elif isinstance(current, Mapping):
            changes[key] = dict(value)
        else:
            changes[key] = type(current)(value)
    return replace(section, **changes)


def _section_to_dict(section) -> Dict[str, Any]:
    result = {}
    for f in fields(section):
        value = getattr(section, f.name)
        if isinstance(value, Mapping):
            value = dict(value)
        elif isinstance(value, tuple):
            value = list(value)
        result[f.name] = value
    return result


def get_default_config() -> ReportIntelligenceConfig:
    """Get the default configuration (production heuristics)."""
    return ReportIntelligenceConfig()
