"""
API Dependencies for dependency injection

Long-lived collaborators (database manager, catalog, overlay store) are
created once per application in ``create_application`` and kept on
``app.state``; services are built per request around them.
"""
from typing import Annotated

from fastapi import Depends, Request

from benderscore.core.database import DatabaseSessionManager
from benderscore.core.security import get_admin_actor
from benderscore.services.catalog import CatalogReader
from benderscore.services.overlay import OverlayMerge, OverlayStore
from benderscore.services.product_score_service import ProductScoreService
from benderscore.services.scoring_engine import ScoringEngine, scoring_engine
from benderscore.services.version_service import VersionService


def get_db_manager(request: Request) -> DatabaseSessionManager:
    return request.app.state.db


def get_catalog(request: Request) -> CatalogReader:
    return request.app.state.catalog


def get_overlay_store(request: Request) -> OverlayStore:
    return request.app.state.overlay


DbManagerDep = Annotated[DatabaseSessionManager, Depends(get_db_manager)]
CatalogDep = Annotated[CatalogReader, Depends(get_catalog)]
OverlayStoreDep = Annotated[OverlayStore, Depends(get_overlay_store)]


async def get_scoring_engine() -> ScoringEngine:
    return scoring_engine


ScoringEngineDep = Annotated[ScoringEngine, Depends(get_scoring_engine)]


# Services
async def get_overlay_merge(catalog: CatalogDep, overlay: OverlayStoreDep) -> OverlayMerge:
    """Get overlay merge over the app's catalog and overlay"""
    return OverlayMerge(catalog, overlay)


OverlayMergeDep = Annotated[OverlayMerge, Depends(get_overlay_merge)]


async def get_version_service(db: DbManagerDep, merge: OverlayMergeDep) -> VersionService:
    """Get version service instance"""
    return VersionService(db=db, merge=merge)


VersionServiceDep = Annotated[VersionService, Depends(get_version_service)]


async def get_product_score_service(
    merge: OverlayMergeDep, versions: VersionServiceDep, engine: ScoringEngineDep
) -> ProductScoreService:
    """Get product score service instance"""
    return ProductScoreService(merge, versions, engine=engine)


ProductScoreServiceDep = Annotated[ProductScoreService, Depends(get_product_score_service)]


# Admin
ActorDep = Annotated[str, Depends(get_admin_actor)]
