"""
Report Intelligence - Risk Area Clusterer.

============================================================
PURPOSE
============================================================
Ranks map areas by how many open reports they hold.

============================================================
CLUSTERING LOGIC
============================================================
1. Load every PENDING/WORKING report
2. Bucket by latitude/longitude rounded to 2 decimals
   (a grid of roughly 1.1 km cells)
3. Drop buckets with fewer than 3 reports
4. risk_score = count * 10 + distinct types * 5
5. Keep the top 10 by risk_score

This is grid bucketing, not density clustering. Two reports
a few meters apart can fall into neighbouring cells when
they straddle a cell boundary. Dashboards are built on this
granularity, so it must not be changed silently.

============================================================
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import RiskClusteringConfig
from .scoring import round_half_up
from .store import ReportFilter, ReportStore
from .types import ReportSnapshot, RiskArea


logger = logging.getLogger(__name__)


def grid_cell(report: ReportSnapshot, decimals: int = 2) -> Tuple[float, float]:
    """(lat, lng) of the grid cell a report falls in."""
    return (
        round_half_up(report.location.latitude, decimals),
        round_half_up(report.location.longitude, decimals),
    )


def cluster_reports(
    reports: Iterable[ReportSnapshot],
    config: Optional[RiskClusteringConfig] = None,
) -> List[RiskArea]:
    """
    Bucket reports into grid cells and rank the cells.

    Pure function over already-loaded reports. Reports without a
    valid location are skipped. Ties keep first-seen cell order.
    """
    cfg = config or RiskClusteringConfig()

    counts: Dict[Tuple[float, float], int] = {}
    types: Dict[Tuple[float, float], Dict[str, int]] = {}

    for report in reports:
        if not report.has_valid_location:
            continue
        key = grid_cell(report, cfg.grid_decimals)
        counts[key] = counts.get(key, 0) + 1
        cell_types = types.setdefault(key, {})
        cell_types[report.report_type] = cell_types.get(report.report_type, 0) + 1

    areas = [
        RiskArea(
            latitude=key[0],
            longitude=key[1],
            count=count,
            types=types[key],
            risk_score=count * cfg.points_per_report + len(types[key]) * cfg.points_per_type,
        )
        for key, count in counts.items()
        if count >= cfg.min_reports
    ]

    areas.sort(key=lambda area: area.risk_score, reverse=True)
    return areas[:cfg.max_areas]


class RiskAreaClusterer:
    """Loads the live set of open reports and clusters it."""

    def __init__(self, store: ReportStore, config: Optional[RiskClusteringConfig] = None):
        self._store = store
        self.config = config or RiskClusteringConfig()

    def predict_high_risk_areas(self) -> List[RiskArea]:
        """
        Top risk areas among open reports.

        Returns an empty list when the store query fails.
        """
        try:
            active_reports = self._store.scan(ReportFilter.active())
        except Exception as e:
            logger.error(f"Error predicting risk areas: {e}")
            return []

        areas = cluster_reports(active_reports, self.config)
        logger.debug(f"Clustered {len(active_reports)} active reports into {len(areas)} risk areas")
        return areas
