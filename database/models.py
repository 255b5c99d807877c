"""
Database ORM Models - Reports.

============================================================
REPORT TABLE
============================================================

One row per citizen report. Location is stored as two float
columns (WGS84) with a composite index used for the bounding
box prefilter of radius queries. Collections (likes, comments,
tags) and AI payloads are JSON columns.

============================================================
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column, Integer, String, Text, Float, Boolean,
    DateTime, JSON, ForeignKey, Index,
)

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.utcnow()


# =============================================================
# REPORTS TABLE
# =============================================================

class ReportRecord(Base):
    """
    Citizen-submitted civic issue.

    AI fields are written once at submission; only
    is_duplicate/duplicate_of are patched afterwards.
    """
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Content
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    report_type = Column(String(50), nullable=False, index=True)
    address_text = Column(Text, nullable=True)

    # Location
    longitude = Column(Float, nullable=False)
    latitude = Column(Float, nullable=False)

    # Lifecycle
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    # Engagement
    likes = Column(JSON, nullable=False, default=list)
    comments = Column(JSON, nullable=False, default=list)

    # Assignment
    assigned_workforce = Column(Integer, nullable=False, default=0)
    assigned_budget = Column(Float, nullable=False, default=0.0)

    # AI/ML generated fields
    priority_score = Column(Integer, nullable=False, default=0, index=True)
    ai_tags = Column(JSON, nullable=False, default=list)
    sentiment_analysis = Column(JSON, nullable=True)
    ai_classification = Column(JSON, nullable=True)
    is_duplicate = Column(Boolean, nullable=False, default=False, index=True)
    duplicate_of = Column(String(36), ForeignKey("reports.id"), nullable=True)

    __table_args__ = (
        Index("idx_reports_location", "latitude", "longitude"),
        Index("idx_reports_status_type", "status", "report_type"),
    )

    def __repr__(self) -> str:
        return f"<ReportRecord id={self.id} type={self.report_type} status={self.status}>"
