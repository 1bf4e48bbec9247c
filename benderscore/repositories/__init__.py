"""
Repository implementations
"""

from .base import BaseRepository
from .product_version import ProductVersionRepository

__all__ = [
    "BaseRepository",
    "ProductVersionRepository",
]
