"""
API v1 routers
"""

from fastapi import APIRouter

from .admin import router as admin_router
from .health import router as health_router
from .products import router as products_router
from .scoring import router as scoring_router

api_router = APIRouter()

# Include routers
api_router.include_router(health_router, tags=["health"])
api_router.include_router(products_router, prefix="/products", tags=["products"])
api_router.include_router(scoring_router, prefix="/scoring", tags=["scoring"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
