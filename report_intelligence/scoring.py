"""
Report Intelligence - Scoring Primitives.

============================================================
PURPOSE
============================================================
Pure functions computed for every report at submission time:

1. calculate_priority_score - 0-100 heuristic ranking
2. analyze_sentiment        - lexicon sentiment of free text
3. generate_tags            - substring-rule tags
4. classify_image_from_report - category guess from text

============================================================
DESIGN PRINCIPLES
============================================================
- Same input = same output (time is an explicit argument)
- No store access, no shared state
- Invalid input yields safe defaults, never an exception

============================================================
"""

import math
import re
from datetime import datetime
from typing import Any, List, Optional

from core.clock import ensure_utc, get_clock

from .config import (
    ClassificationConfig,
    PriorityScoringConfig,
    SentimentConfig,
    TaggingConfig,
)
from .types import (
    ImageClassification,
    ReportSnapshot,
    SentimentLabel,
    SentimentResult,
)


_DEFAULT_PRIORITY = PriorityScoringConfig()
_DEFAULT_SENTIMENT = SentimentConfig()
_DEFAULT_TAGGING = TaggingConfig()
_DEFAULT_CLASSIFICATION = ClassificationConfig()

_WORD_SPLIT = re.compile(r"\W+")

SECONDS_PER_DAY = 86400.0


# ============================================================
# NUMERIC HELPERS
# ============================================================


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round half away from negative infinity (0.5 -> 1, -0.5 -> 0).

    Python's round() uses banker's rounding; scores are rounded
    the way the dashboards always have.
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def as_count(value: Any) -> float:
    """Coerce a count-like value, anything non-numeric counts as 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def days_since(created_at: Any, now: Optional[datetime] = None) -> float:
    """
    Age in fractional days.

    Missing, unparseable or future timestamps give 0.
    """
    if created_at is None:
        return 0.0

    if isinstance(created_at, str):
        text = created_at.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            created_at = datetime.fromisoformat(text)
        except ValueError:
            return 0.0

    if not isinstance(created_at, datetime):
        return 0.0

    if now is None:
        elapsed = get_clock().age_of(created_at)
    else:
        elapsed = ensure_utc(now) - ensure_utc(created_at)
    days = elapsed.total_seconds() / SECONDS_PER_DAY

    if not math.isfinite(days) or days < 0:
        return 0.0
    return days


# ============================================================
# PRIORITY SCORE
# ============================================================


def calculate_priority_score(
    report: ReportSnapshot,
    nearby_reports: Any = 0,
    now: Optional[datetime] = None,
    config: Optional[PriorityScoringConfig] = None,
) -> int:
    """
    Calculate the 0-100 priority score of a report.

    Args:
        report: Report being scored
        nearby_reports: Number of reports within the density radius
        now: Reference time for the age factor (defaults to the clock)
        config: Scoring weights

    Returns:
        Integer score in [min_score, max_score]
    """
    cfg = config or _DEFAULT_PRIORITY

    type_score = cfg.type_scores.get(report.report_type, cfg.default_type_score)

    density = min(max(as_count(nearby_reports), 0.0) * cfg.density_per_report, cfg.density_cap)

    likes = len(report.likes or ())
    comments = len(report.comments or ())
    engagement = min(likes * cfg.points_per_like + comments * cfg.points_per_comment, cfg.engagement_cap)

    age = min(days_since(report.created_at, now) * cfg.points_per_day, cfg.age_cap)

    description = (report.description or "").lower()
    keyword_hits = sum(1 for keyword in cfg.urgent_keywords if keyword in description)
    keywords = min(keyword_hits * cfg.points_per_keyword, cfg.keyword_cap)

    score = type_score + density + engagement + age + keywords
    if not math.isfinite(score):
        score = cfg.fallback_score

    return int(min(max(round_half_up(score), cfg.min_score), cfg.max_score))


# ============================================================
# SENTIMENT
# ============================================================


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens, split on whitespace and punctuation."""
    return [token for token in _WORD_SPLIT.split(text.lower()) if token]


def analyze_sentiment(text: Optional[str], config: Optional[SentimentConfig] = None) -> SentimentResult:
    """
    Lexicon sentiment of free text.

    score = (positive - negative) / (positive + negative), two
    decimals. Labels use +/-0.2 thresholds on the unrounded score.
    """
    if not text or not text.strip():
        return SentimentResult()

    cfg = config or _DEFAULT_SENTIMENT
    positive_words = set(cfg.positive_words)
    negative_words = set(cfg.negative_words)

    positive_count = 0
    negative_count = 0
    for token in tokenize(text):
        if token in positive_words:
            positive_count += 1
        if token in negative_words:
            negative_count += 1

    total = positive_count + negative_count
    if total == 0:
        return SentimentResult()

    score = (positive_count - negative_count) / total

    if score > cfg.positive_threshold:
        sentiment = SentimentLabel.POSITIVE
    elif score < cfg.negative_threshold:
        sentiment = SentimentLabel.NEGATIVE
    else:
        sentiment = SentimentLabel.NEUTRAL

    return SentimentResult(
        sentiment=sentiment,
        score=round_half_up(score, 2),
        positive_count=positive_count,
        negative_count=negative_count,
    )


# ============================================================
# TAGS
# ============================================================


def _report_text(report: ReportSnapshot) -> str:
    return f"{report.title or ''} {report.description or ''}".lower()


def generate_tags(report: ReportSnapshot, config: Optional[TaggingConfig] = None) -> List[str]:
    """
    Tags from address text, title/description and report type.

    The hyphenated report type is always included. Order is
    stable (rule order) and duplicates are dropped.
    """
    cfg = config or _DEFAULT_TAGGING
    tags: List[str] = []

    if report.address_text:
        address = report.address_text.lower()
        for tag, triggers in cfg.address_rules:
            if any(trigger in address for trigger in triggers):
                tags.append(tag)

    text = _report_text(report)
    for tag, triggers in cfg.content_rules:
        if any(trigger in text for trigger in triggers):
            tags.append(tag)

    tags.append((report.report_type or "").lower().replace(" ", "-"))

    return list(dict.fromkeys(tags))


# ============================================================
# CLASSIFICATION
# ============================================================


def classify_image_from_report(
    report: ReportSnapshot,
    config: Optional[ClassificationConfig] = None,
) -> ImageClassification:
    """
    Guess the report category from title and description.

    Despite the name no image is analysed. The candidate with the
    most keyword hits wins; on a tie the earlier candidate stays.
    """
    cfg = config or _DEFAULT_CLASSIFICATION
    text = _report_text(report)

    max_score = 0
    predicted_type = cfg.default_type

    for candidate, keywords in cfg.keywords:
        score = sum(1 for keyword in keywords if keyword in text)
        if score > max_score:
            max_score = score
            predicted_type = candidate

    confidence = min((max_score / cfg.hits_for_full_confidence) * 100, 100)
    return ImageClassification(predicted_type=predicted_type, confidence=confidence)
