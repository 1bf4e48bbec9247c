"""
Public product endpoints
Scores are recomputed on every request from catalog + overlay + latest published fields
"""

from typing import List

from fastapi import APIRouter, Path

from benderscore.api.deps import ProductScoreServiceDep
from benderscore.schemas.score import ProductScore, ProductSummary

router = APIRouter()


@router.get("", response_model=List[ProductSummary])
async def list_products(service: ProductScoreServiceDep) -> List[ProductSummary]:
    """Merged catalog with each product's current score"""
    return await service.list_products()


@router.get("/{product_id}/score", response_model=ProductScore)
async def get_product_score(
    service: ProductScoreServiceDep,
    product_id: str = Path(..., min_length=1, max_length=200),
) -> ProductScore:
    """
    Current score with per-category breakdown.

    ``total`` is null with ``source: "none"`` when the product could not be
    scored; ``clamped`` is true when the category sum exceeded the maximum.
    """
    return await service.get_score(product_id)
