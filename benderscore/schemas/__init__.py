"""
API Schemas (Pydantic models for request/response)
"""

from .common import HealthCheckResponse
from .score import (
    MAX_TOTAL_SCORE,
    ProductScore,
    ProductSummary,
    ScoreBreakdownItem,
    ScoreResult,
    ScoringCategoryRead,
    ScoringInput,
    ScoringMethodologyRead,
)
from .version import (
    DraftResponse,
    EvidenceIn,
    EvidenceRead,
    OverlayReloadResponse,
    OverlayResponse,
    ProductVersionRead,
    PublishedResponse,
    PublishResponse,
    SaveDraftRequest,
    SaveDraftResponse,
    VersionHistoryResponse,
)

__all__ = [
    "HealthCheckResponse",
    # Scoring
    "MAX_TOTAL_SCORE",
    "ProductScore",
    "ProductSummary",
    "ScoreBreakdownItem",
    "ScoreResult",
    "ScoringCategoryRead",
    "ScoringInput",
    "ScoringMethodologyRead",
    # Versions
    "DraftResponse",
    "EvidenceIn",
    "EvidenceRead",
    "OverlayReloadResponse",
    "OverlayResponse",
    "ProductVersionRead",
    "PublishedResponse",
    "PublishResponse",
    "SaveDraftRequest",
    "SaveDraftResponse",
    "VersionHistoryResponse",
]
