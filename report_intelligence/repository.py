"""
Report Intelligence - SQL Repository.

============================================================
PURPOSE
============================================================
ReportStore implementation backed by the SQLAlchemy reports
table (database.models.ReportRecord).

Provides:
- Radius queries (bounding box in SQL, exact haversine here)
- Filtered scans for training and clustering
- Saving enriched submissions
- The write-once duplicate patch

The repository never commits. Callers own the transaction
(database.transaction_scope).

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, desc, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import ensure_utc
from core.exceptions import StoreQueryError
from database.models import ReportRecord, generate_uuid

from .store import ReportFilter, ReportStore, bounding_box, haversine_meters, longitude_ranges
from .types import (
    EnrichmentResult,
    GeoPoint,
    ReportComment,
    ReportSnapshot,
    ReportStatus,
)


logger = logging.getLogger(__name__)


# ============================================================
# RECORD <-> SNAPSHOT CONVERSION
# ============================================================


def _parse_status(raw: Optional[str], report_id: Any) -> ReportStatus:
    try:
        return ReportStatus(raw)
    except ValueError:
        logger.warning(f"Report {report_id} has unknown status {raw!r}, treating as PENDING")
        return ReportStatus.PENDING


def _parse_comment(raw: Dict[str, Any]) -> ReportComment:
    created_at = raw.get("created_at")
    if isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError:
            created_at = None
    return ReportComment(
        author_id=str(raw.get("author_id") or ""),
        text=str(raw.get("text") or ""),
        created_at=created_at,
    )


def record_to_snapshot(record: ReportRecord) -> ReportSnapshot:
    """Read-only snapshot of an ORM row."""
    return ReportSnapshot(
        id=record.id,
        report_type=record.report_type,
        title=record.title or "",
        description=record.description or "",
        address_text=record.address_text,
        location=GeoPoint(longitude=record.longitude, latitude=record.latitude),
        created_at=ensure_utc(record.created_at) if record.created_at else None,
        status=_parse_status(record.status, record.id),
        likes=frozenset(record.likes or ()),
        comments=tuple(_parse_comment(c) for c in (record.comments or ()) if isinstance(c, dict)),
        assigned_workforce=record.assigned_workforce or 0,
        assigned_budget=record.assigned_budget or 0.0,
        priority_score=record.priority_score,
        ai_tags=tuple(record.ai_tags or ()),
        is_duplicate=bool(record.is_duplicate),
        duplicate_of=record.duplicate_of,
    )


def _comment_to_json(comment: ReportComment) -> Dict[str, Any]:
    return {
        "author_id": comment.author_id,
        "text": comment.text,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }


def _naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


# ============================================================
# REPOSITORY
# ============================================================


class SqlReportStore(ReportStore):
    """
    SQLAlchemy-backed report store.

    ============================================================
    METHODS
    ============================================================
    - query_near / count_near / scan: ReportStore reads
    - save_report: Persist a submission with its AI fields
    - get_report: Single report by id
    - mark_duplicate: Write-once duplicate reference
    - list_by_priority: Ranking by stored priority
    - count_duplicates: Reports flagged as duplicates

    ============================================================
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session (caller commits)
        """
        self._session = session

    # --------------------------------------------------------
    # QUERY HELPERS
    # --------------------------------------------------------

    @staticmethod
    def _apply_filter(stmt, report_filter: ReportFilter):
        if report_filter.statuses is not None:
            stmt = stmt.where(ReportRecord.status.in_([s.value for s in report_filter.statuses]))
        if report_filter.exclude_id is not None:
            stmt = stmt.where(ReportRecord.id != report_filter.exclude_id)
        if report_filter.report_type is not None:
            stmt = stmt.where(ReportRecord.report_type == report_filter.report_type)
        if report_filter.require_assignment:
            stmt = stmt.where(
                ReportRecord.assigned_workforce > 0,
                ReportRecord.assigned_budget > 0,
            )
        return stmt

    def _execute(self, stmt, operation: str) -> List[ReportRecord]:
        try:
            return list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Report store {operation} failed: {e}")
            raise StoreQueryError(f"Report store {operation} failed: {e}", operation=operation, cause=e) from e

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def query_near(
        self,
        center: GeoPoint,
        radius_meters: float,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        if not center.is_valid:
            raise StoreQueryError("Invalid query center", operation="query_near")

        min_lon, min_lat, max_lon, max_lat = bounding_box(center, radius_meters)
        stmt = select(ReportRecord).where(
            ReportRecord.latitude.between(min_lat, max_lat),
            or_(*(
                ReportRecord.longitude.between(low, high)
                for low, high in longitude_ranges(min_lon, max_lon)
            )),
        )
        stmt = self._apply_filter(stmt, report_filter or ReportFilter())

        hits = []
        for record in self._execute(stmt, "query_near"):
            snapshot = record_to_snapshot(record)
            if not snapshot.has_valid_location:
                continue
            distance = haversine_meters(center, snapshot.location)
            if distance <= radius_meters:
                hits.append((distance, snapshot))

        hits.sort(key=lambda hit: hit[0])
        results = [snapshot for _, snapshot in hits]
        return results[:limit] if limit is not None else results

    def scan(
        self,
        report_filter: Optional[ReportFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ReportSnapshot]:
        stmt = self._apply_filter(select(ReportRecord), report_filter or ReportFilter())
        stmt = stmt.order_by(desc(ReportRecord.created_at))
        if limit is not None:
            stmt = stmt.limit(limit)
        return [record_to_snapshot(r) for r in self._execute(stmt, "scan")]

    def get_report(self, report_id: str) -> Optional[ReportSnapshot]:
        """Get a single report by id."""
        try:
            record = self._session.get(ReportRecord, report_id)
        except SQLAlchemyError as e:
            raise StoreQueryError(f"Failed to load report {report_id}: {e}", operation="get_report", cause=e) from e
        return record_to_snapshot(record) if record is not None else None

    def list_by_priority(
        self,
        limit: int = 50,
        report_filter: Optional[ReportFilter] = None,
    ) -> List[ReportSnapshot]:
        """Reports ordered by stored priority score, highest first."""
        stmt = self._apply_filter(select(ReportRecord), report_filter or ReportFilter())
        stmt = stmt.order_by(desc(ReportRecord.priority_score), desc(ReportRecord.created_at)).limit(limit)
        return [record_to_snapshot(r) for r in self._execute(stmt, "list_by_priority")]

    def count_duplicates(self) -> int:
        """Number of reports flagged as duplicates."""
        try:
            return self._session.execute(
                select(func.count(ReportRecord.id)).where(ReportRecord.is_duplicate.is_(True))
            ).scalar_one()
        except SQLAlchemyError as e:
            raise StoreQueryError(f"Failed to count duplicates: {e}", operation="count_duplicates", cause=e) from e

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def save_report(
        self,
        report: ReportSnapshot,
        enrichment: Optional[EnrichmentResult] = None,
    ) -> ReportSnapshot:
        """
        Persist a report, with its AI fields when given.

        Args:
            report: Report to insert (id generated when missing)
            enrichment: Result of the submission enrichment

        Returns:
            Snapshot of the stored row
        """
        if not report.has_valid_location:
            raise StoreQueryError(f"Report {report.id} has no valid location", operation="save_report")

        record = ReportRecord(
            id=report.id or generate_uuid(),
            title=report.title,
            description=report.description,
            report_type=report.report_type,
            address_text=report.address_text,
            longitude=report.location.longitude,
            latitude=report.location.latitude,
            status=report.status.value,
            likes=sorted(report.likes),
            comments=[_comment_to_json(c) for c in report.comments],
            assigned_workforce=report.assigned_workforce,
            assigned_budget=report.assigned_budget,
            priority_score=report.priority_score or 0,
            ai_tags=list(report.ai_tags),
            is_duplicate=report.is_duplicate,
            duplicate_of=report.duplicate_of,
        )
        created_at = _naive_utc(report.created_at)
        if created_at is not None:
            record.created_at = created_at

        if enrichment is not None:
            record.priority_score = enrichment.priority_score
            record.ai_tags = list(enrichment.ai_tags)
            record.sentiment_analysis = enrichment.sentiment_analysis.to_dict()
            record.ai_classification = enrichment.ai_classification.to_dict()

        try:
            self._session.add(record)
            self._session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save report: {e}")
            raise StoreQueryError(f"Failed to save report: {e}", operation="save_report", cause=e) from e

        logger.debug(f"Saved report {record.id} ({record.report_type})")
        return record_to_snapshot(record)

    def mark_duplicate(self, report_id: str, duplicate_of: str) -> bool:
        """
        Set duplicate_of on report_id.

        Only the new report is patched. Self-references and an
        already-set duplicate_of are refused.
        """
        if report_id == duplicate_of:
            return False

        try:
            record = self._session.get(ReportRecord, report_id)
            if record is None:
                return False
            if record.duplicate_of is not None:
                logger.info(f"Report {report_id} already marked duplicate of {record.duplicate_of}")
                return False

            record.is_duplicate = True
            record.duplicate_of = duplicate_of
            self._session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to mark report {report_id} as duplicate: {e}")
            raise StoreQueryError(
                f"Failed to mark report {report_id} as duplicate: {e}",
                operation="mark_duplicate",
                cause=e,
            ) from e

        logger.info(f"Report {report_id} marked duplicate of {duplicate_of}")
        return True
