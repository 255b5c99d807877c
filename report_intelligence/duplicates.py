"""
Report Intelligence - Duplicate Detector.

============================================================
PURPOSE
============================================================
Flags likely re-submissions of an existing, still open issue.

============================================================
MATCHING RULES
============================================================
1. Candidates: up to 10 PENDING/WORKING reports within 100 m,
   excluding the new report itself
2. Jaro-Winkler similarity on lowercased titles and on
   lowercased descriptions
3. Match when either similarity exceeds 0.7 AND the report
   type is exactly the same
4. Matches sorted by the larger of the two similarities

The detector is a best-effort enrichment: any store failure
yields an empty result.

============================================================
"""

import logging
from typing import List, Optional

import jellyfish

from .config import DuplicateDetectionConfig
from .store import ReportFilter, ReportStore
from .types import DuplicateMatch, ReportSnapshot


logger = logging.getLogger(__name__)


def text_similarity(left: Optional[str], right: Optional[str]) -> float:
    """Case-insensitive Jaro-Winkler similarity in [0, 1]."""
    return jellyfish.jaro_winkler_similarity((left or "").lower(), (right or "").lower())


class DuplicateDetector:
    """Geospatial + text-similarity duplicate matching."""

    def __init__(self, store: ReportStore, config: Optional[DuplicateDetectionConfig] = None):
        self._store = store
        self.config = config or DuplicateDetectionConfig()

    def detect(self, report: ReportSnapshot) -> List[DuplicateMatch]:
        """
        Find open reports the given report likely duplicates.

        Args:
            report: The newly persisted report (its id is excluded)

        Returns:
            Matches ordered by similarity, best first. Empty when the
            report has no valid location or the store query fails.
        """
        if not report.has_valid_location:
            return []

        try:
            candidates = self._store.query_near(
                report.location,
                self.config.radius_meters,
                ReportFilter.active(exclude_id=report.id),
                limit=self.config.candidate_limit,
            )
        except Exception as e:
            logger.error(f"Error detecting duplicates for report {report.id}: {e}")
            return []

        return self.rank_candidates(report, candidates)

    def rank_candidates(
        self,
        report: ReportSnapshot,
        candidates: List[ReportSnapshot],
    ) -> List[DuplicateMatch]:
        """Score already-fetched candidates against the report."""
        threshold = self.config.similarity_threshold
        matches = []

        for candidate in candidates:
            if candidate.id is None or candidate.id == report.id:
                continue

            title_similarity = text_similarity(report.title, candidate.title)
            description_similarity = text_similarity(report.description, candidate.description)

            if candidate.report_type != report.report_type:
                continue
            if title_similarity <= threshold and description_similarity <= threshold:
                continue

            matches.append(DuplicateMatch(
                report_id=candidate.id,
                similarity=max(title_similarity, description_similarity),
                reason="Similar title" if title_similarity > threshold else "Similar description",
                title_similarity=title_similarity,
                description_similarity=description_similarity,
            ))

        matches.sort(key=lambda match: match.similarity, reverse=True)
        return matches

    def best_match(self, report: ReportSnapshot) -> Optional[DuplicateMatch]:
        matches = self.detect(report)
        return matches[0] if matches else None
