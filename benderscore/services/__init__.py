"""
Service layer for business logic
"""

from .catalog import CatalogReader, JsonCatalogReader, StaticCatalogReader
from .overlay import OverlayMerge, OverlayStore, merge_record
from .product_score_service import ProductScoreService, score_record
from .record_adapter import RecordAdapter, adapt
from .scoring_engine import ScoringEngine, score
from .version_service import VersionService

__all__ = [
    "CatalogReader",
    "JsonCatalogReader",
    "StaticCatalogReader",
    "OverlayMerge",
    "OverlayStore",
    "merge_record",
    "ProductScoreService",
    "score_record",
    "RecordAdapter",
    "adapt",
    "ScoringEngine",
    "score",
    "VersionService",
]
