"""
Draft/publish API schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from benderscore.models import EvidenceSourceType


class EvidenceIn(BaseModel):
    """Evidence for one field as captured in the admin UI (camelCase or snake_case keys)"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    field_key: str = Field(..., min_length=1, validation_alias=AliasChoices("field_key", "fieldKey"))
    source_type: EvidenceSourceType = Field(..., validation_alias=AliasChoices("source_type", "sourceType"))
    url: Optional[str] = Field(None, max_length=2048)
    quoted_text: Optional[str] = Field(None, validation_alias=AliasChoices("quoted_text", "quotedText"))
    how_gathered: Optional[str] = Field(None, validation_alias=AliasChoices("how_gathered", "howGathered"))
    notes: Optional[str] = None
    verified_by: Optional[str] = Field(None, validation_alias=AliasChoices("verified_by", "verifiedBy"))
    verified_at: Optional[datetime] = Field(None, validation_alias=AliasChoices("verified_at", "verifiedAt"))


class SaveDraftRequest(BaseModel):
    """Save Draft payload; ``fields`` is an opaque snapshot of the edited product fields"""

    fields: Dict[str, Any] = Field(default_factory=dict)
    evidence: List[EvidenceIn] = Field(default_factory=list)
    score: Optional[Dict[str, Any]] = Field(
        None, description="Score snapshot; computed from the merged fields when omitted"
    )


class SaveDraftResponse(BaseModel):
    draft_version_id: UUID


class EvidenceRead(BaseModel):
    """Stored evidence row"""

    id: UUID
    product_version_id: UUID
    field_key: str
    source_type: str
    url: Optional[str] = None
    quoted_text: Optional[str] = None
    how_gathered: Optional[str] = None
    notes: Optional[str] = None
    verified_by: str
    verified_at: datetime
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductVersionRead(BaseModel):
    """Draft or published version row"""

    id: UUID
    product_id: str
    status: str
    version: int
    fields: Dict[str, Any] = Field(validation_alias=AliasChoices("fields", "fields_json"))
    score: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("score", "score_json"))
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DraftResponse(BaseModel):
    """Current draft with its evidence; ``draft`` is null when the product has none"""

    draft: Optional[ProductVersionRead] = None
    evidence: List[EvidenceRead] = Field(default_factory=list)


class PublishedResponse(BaseModel):
    """Latest published version with its evidence; ``published`` is null before the first publish"""

    published: Optional[ProductVersionRead] = None
    evidence: List[EvidenceRead] = Field(default_factory=list)


class PublishResponse(BaseModel):
    published_version_id: UUID
    product_id: str
    version: int = Field(..., ge=1)
    published_at: datetime
    actor: str


class VersionHistoryResponse(BaseModel):
    product_id: str
    versions: List[ProductVersionRead]


class OverlayResponse(BaseModel):
    product_id: str
    overlay: Dict[str, Any]


class OverlayReloadResponse(BaseModel):
    products: int
