"""
Product version models (draft/published snapshots and field evidence)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index, text
from sqlmodel import JSON, Column, Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timezone-aware UTC; naive values are taken to be UTC already"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def timestamp_field() -> Any:
    return Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


class VersionStatus(str, Enum):
    """Lifecycle status of a product version row"""

    DRAFT = "draft"
    PUBLISHED = "published"


class EvidenceSourceType(str, Enum):
    """Kind of source backing a field value"""

    WEB_PAGE = "web-page"
    PDF = "pdf"
    MANUAL = "manual"
    OTHER = "other"


class ProductVersion(SQLModel, table=True):
    """Draft or published snapshot of a product's fields and score.

    At most one draft row exists per product; published rows are immutable
    and numbered 1, 2, 3... per product.
    """

    __tablename__ = "product_versions"
    __table_args__ = (
        Index(
            "uq_product_versions_single_draft",
            "product_id",
            unique=True,
            sqlite_where=text("status = 'draft'"),
            postgresql_where=text("status = 'draft'"),
        ),
        Index(
            "uq_product_versions_published_version",
            "product_id",
            "version",
            unique=True,
            sqlite_where=text("status = 'published'"),
            postgresql_where=text("status = 'published'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_id: str = Field(index=True)
    status: str = Field(default=VersionStatus.DRAFT.value)
    version: int = Field(default=0, ge=0)
    fields_json: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    score_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_by: str
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()


class ProductFieldEvidence(SQLModel, table=True):
    """Citation backing one field of one product version"""

    __tablename__ = "product_field_evidence"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    product_version_id: UUID = Field(foreign_key="product_versions.id", index=True)
    field_key: str
    source_type: str = Field(default=EvidenceSourceType.OTHER.value)
    url: Optional[str] = None
    quoted_text: Optional[str] = None
    how_gathered: Optional[str] = None
    notes: Optional[str] = None
    verified_by: str
    verified_at: datetime = timestamp_field()
    is_active: bool = Field(default=True)
    created_at: datetime = timestamp_field()
    updated_at: datetime = timestamp_field()
