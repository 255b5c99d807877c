"""
Pydantic Schemas for raw report documents.

Validation happens here, at the edge. The engine itself
works on ReportSnapshot and never raises for bad content.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .types import (
    GeoPoint,
    InvalidReportError,
    ReportComment,
    ReportSnapshot,
    ReportStatus,
    ReportType,
)


# =============================================================
# EMBEDDED SCHEMAS
# =============================================================

class LocationPayload(BaseModel):
    """GeoJSON point, coordinates are [longitude, latitude]."""
    type: str = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def check_ranges(cls, value: List[float]) -> List[float]:
        longitude, latitude = value
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"longitude {longitude} out of range")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"latitude {latitude} out of range")
        return value

    def to_point(self) -> GeoPoint:
        return GeoPoint(longitude=self.coordinates[0], latitude=self.coordinates[1])


class CommentPayload(BaseModel):
    """Citizen comment on a report."""
    author_id: str = ""
    text: str
    created_at: Optional[datetime] = None


# =============================================================
# REPORT SCHEMA
# =============================================================

class ReportPayload(BaseModel):
    """Report document as stored or submitted."""
    id: Optional[str] = None
    report_type: ReportType
    title: str = Field(min_length=1)
    description: str = ""
    address_text: Optional[str] = None
    location: LocationPayload
    created_at: Optional[datetime] = None
    status: ReportStatus = ReportStatus.PENDING

    # Engagement
    likes: List[str] = Field(default_factory=list)
    comments: List[CommentPayload] = Field(default_factory=list)

    # Assignment
    assigned_workforce: int = Field(default=0, ge=0)
    assigned_budget: float = Field(default=0.0, ge=0)

    # AI fields
    priority_score: Optional[int] = Field(default=None, ge=0, le=100)
    ai_tags: List[str] = Field(default_factory=list)
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None

    class Config:
        from_attributes = True

    def to_snapshot(self) -> ReportSnapshot:
        return ReportSnapshot(
            id=self.id,
            report_type=self.report_type.value,
            title=self.title,
            description=self.description,
            address_text=self.address_text,
            location=self.location.to_point(),
            created_at=self.created_at,
            status=self.status,
            likes=frozenset(self.likes),
            comments=tuple(
                ReportComment(author_id=c.author_id, text=c.text, created_at=c.created_at)
                for c in self.comments
            ),
            assigned_workforce=self.assigned_workforce,
            assigned_budget=self.assigned_budget,
            priority_score=self.priority_score,
            ai_tags=tuple(self.ai_tags),
            is_duplicate=self.is_duplicate,
            duplicate_of=self.duplicate_of,
        )


def parse_report(document: Dict[str, Any]) -> ReportSnapshot:
    """
    Validate a raw report document and convert it to a snapshot.

    Raises:
        InvalidReportError: with the pydantic error list in context
    """
    try:
        payload = ReportPayload.model_validate(document)
    except ValidationError as e:
        raise InvalidReportError(
            f"Invalid report document: {e.error_count()} error(s)",
            context={"errors": e.errors(include_url=False)},
            cause=e,
        ) from e
    return payload.to_snapshot()
