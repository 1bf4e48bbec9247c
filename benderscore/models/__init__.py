"""
SQLModel database models
"""

from .product_version import EvidenceSourceType, ProductFieldEvidence, ProductVersion, VersionStatus, as_utc, utc_now

__all__ = [
    "ProductVersion",
    "ProductFieldEvidence",
    "VersionStatus",
    "EvidenceSourceType",
    "as_utc",
    "utc_now",
]
