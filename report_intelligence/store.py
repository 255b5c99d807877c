"""
Report Intelligence - Store Capability.

============================================================
PURPOSE
============================================================
The engine reads reports through a narrow interface so the
scoring and prediction logic has no dependency on any
particular persistence technology.

============================================================
CAPABILITIES
============================================================
- query_near: reports within a radius of a point
- scan: reports matching a filter
- count_near: size of a query_near result
- list_by_priority / count_duplicates: dashboard roll-ups
- mark_duplicate: optional write hook for the duplicate pass

Implementations:
- InMemoryReportStore (this module): tests, scripts
- SqlReportStore (repository.py): SQLAlchemy

============================================================
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from core.exceptions import StoreQueryError

from .types import GeoPoint, ReportSnapshot, ReportStatus


logger = logging.getLogger(__name__)

# Mean earth radius (IUGG)
EARTH_RADIUS_METERS = 6371008.8


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def bounding_box(center: GeoPoint, radius_meters: float) -> Tuple[float, float, float, float]:
    """
    Lat/lon box enclosing a radius, as (min_lon, min_lat, max_lon, max_lat).

    Used as a cheap prefilter before the exact haversine check.
    Latitudes are clamped to the poles. Longitudes are left unwrapped
    and may fall outside [-180, 180] near the antimeridian; pass them
    through longitude_ranges() before querying.
    """
    d_lat = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    cos_lat = math.cos(math.radians(center.latitude))
    if cos_lat < 1e-12:
        d_lon = 180.0
    else:
        d_lon = min(180.0, math.degrees(radius_meters / (EARTH_RADIUS_METERS * cos_lat)))

    return (
        center.longitude - d_lon,
        max(-90.0, center.latitude - d_lat),
        center.longitude + d_lon,
        min(90.0, center.latitude + d_lat),
    )


def longitude_ranges(min_lon: float, max_lon: float) -> List[Tuple[float, float]]:
    """
    Split an unwrapped longitude span into ranges inside [-180, 180].

    A span crossing the antimeridian yields two ranges, one on each side.
    """
    if max_lon - min_lon >= 360.0:
        return [(-180.0, 180.0)]
    if min_lon < -180.0:
        return [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    if max_lon > 180.0:
        return [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    return [(min_lon, max_lon)]


# ============================================================
# FILTER
# ============================================================


@dataclass(frozen=True)
class ReportFilter:
    """
    Conditions applied by every store query.

    require_assignment keeps only reports with both
    assigned_workforce > 0 and assigned_budget > 0.
    """

    statuses: Optional[Tuple[ReportStatus, ...]] = None
    exclude_id: Optional[str] = None
    report_type: Optional[str] = None
    require_assignment: bool = False

    @classmethod
    def active(cls, exclude_id: Optional[str] = None) -> "ReportFilter":
        return cls(statuses=ReportStatus.active_statuses(), exclude_id=exclude_id)

    @classmethod
    def training(cls) -> "ReportFilter":
        return cls(statuses=(ReportStatus.CLEARED,), require_assignment=True)

    def matches(self, report: ReportSnapshot) -> bool:
        if self.statuses is not None and report.status not in self.statuses:
            return False
        if self.exclude_id is not None and report.id == self.exclude_id:
            return False
        if self.report_type is not None and report.report_type != self.report_type:
            return False
        if self.require_assignment and not (report.assigned_workforce > 0 and report.assigned_budget > 0):
            return False
        return True


# ============================================================
# STORE INTERFACE
# ============================================================


class ReportStore(ABC):
    """Read capability the engine needs from the report store."""

    @abstractmethod
    def query_near(
        self,
        center: GeoPoint,
        radius_meters: float,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        """Reports within radius_meters of center, nearest first."""
        pass

    @abstractmethod
    def scan(
        self,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        """All reports matching the filter."""
        pass

    def count_near(
        self,
        center: GeoPoint,
        radius_meters: float,
        report_filter: Optional[ReportFilter] = None,
    ) -> int:
        return len(self.query_near(center, radius_meters, report_filter))

    def list_by_priority(
        self,
        limit: int = 50,
        report_filter: Optional[ReportFilter] = None,
    ) -> List[ReportSnapshot]:
        """Reports ordered by stored priority score, highest first."""
        reports = self.scan(report_filter)
        reports.sort(key=lambda r: r.priority_score or 0, reverse=True)
        return reports[:limit]

    def count_duplicates(self) -> int:
        return sum(1 for r in self.scan() if r.is_duplicate)

    def mark_duplicate(self, report_id: str, duplicate_of: str) -> bool:
        """
        Flag report_id as a duplicate of duplicate_of.

        Read-only stores return False.
        """
        return False


# ============================================================
# IN-MEMORY STORE
# ============================================================


class InMemoryReportStore(ReportStore):
    """
    List-backed store.

    Reports without a valid location never match a radius query.
    """

    def __init__(self, reports: Optional[Iterable[ReportSnapshot]] = None):
        self._reports: List[ReportSnapshot] = list(reports or ())
        self._lock = threading.Lock()

    def add(self, report: ReportSnapshot) -> ReportSnapshot:
        with self._lock:
            self._reports.append(report)
        return report

    def get(self, report_id: str) -> Optional[ReportSnapshot]:
        with self._lock:
            for report in self._reports:
                if report.id == report_id:
                    return report
        return None

    def __len__(self) -> int:
        return len(self._reports)

    def query_near(
        self,
        center: GeoPoint,
        radius_meters: float,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        if not center.is_valid:
            raise StoreQueryError("Invalid query center", operation="query_near")

        report_filter = report_filter or ReportFilter()
        with self._lock:
            reports = list(self._reports)

        hits = []
        for report in reports:
            if not report.has_valid_location or not report_filter.matches(report):
                continue
            distance = haversine_meters(center, report.location)
            if distance <= radius_meters:
                hits.append((distance, report))

        hits.sort(key=lambda hit: hit[0])
        results = [report for _, report in hits]
        return results[:limit] if limit is not None else results

    def scan(
        self,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        report_filter = report_filter or ReportFilter()
        with self._lock:
            results = [report for report in self._reports if report_filter.matches(report)]
        return results[:limit] if limit is not None else results

    def mark_duplicate(self, report_id: str, duplicate_of: str) -> bool:
        if report_id == duplicate_of:
            return False
        with self._lock:
            for index, report in enumerate(self._reports):
                if report.id != report_id:
                    continue
                if report.duplicate_of is not None:
                    logger.info(f"Report {report_id} already marked duplicate of {report.duplicate_of}")
                    return False
                self._reports[index] = report.with_updates(is_duplicate=True, duplicate_of=duplicate_of)
                return True
        return False
