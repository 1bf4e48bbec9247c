"""
Test configuration and fixtures
"""

from typing import Any, Dict, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from benderscore.api.v1.admin import limiter
from benderscore.core.config import settings
from benderscore.core.database import DatabaseSessionManager
from benderscore.main import create_application
from benderscore.services.catalog import StaticCatalogReader
from benderscore.services.overlay import OverlayMerge, OverlayStore
from benderscore.services.version_service import VersionService

# In-memory database shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"

ADMIN_API_KEY = "test-admin-key"


@pytest.fixture
def catalog_records() -> List[Dict[str, Any]]:
    """Small base catalog in the camelCase shape the JSON catalog uses"""
    return [
        {
            "id": "roguefab-m601",
            "name": "RogueFab M601",
            "brand": "RogueFab",
            "model": "M601",
            "type": "Hydraulic",
            "capacity": "2-3/8\" OD",
            "price": "$2,050 – $2,895",
            "bendAngle": 195,
            "wallThicknessCapacity": ".156",
            "materials": ["Mild steel", "4130 chromoly", "Stainless"],
            "dieShapes": ["Round tube", "Pipe", "Square tube"],
        },
        {
            "id": "jd2-model-32",
            "name": "JD2 Model 32",
            "brand": "JD2",
            "model": "Model 32",
            "type": "Manual",
            "capacity": "2\" OD (typical roll cage sizes)",
            "price": "$1,545 – $1,895",
        },
        {
            "id": "hossfeld-no2",
            "name": "Hossfeld No. 2",
            "brand": "Hossfeld",
            "model": "No. 2",
            "type": "Manual",
        },
    ]


@pytest.fixture
def catalog(catalog_records):
    return StaticCatalogReader(catalog_records)


@pytest.fixture
def overlay():
    """Memory-only overlay store"""
    return OverlayStore()


@pytest.fixture
def merge(catalog, overlay):
    return OverlayMerge(catalog, overlay)


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database with all tables"""
    manager = DatabaseSessionManager(TEST_DATABASE_URL)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def version_service(db, merge):
    return VersionService(db=db, merge=merge)


@pytest.fixture
def app(db, catalog, overlay, monkeypatch):
    """Application wired to the test database, catalog and overlay"""
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_API_KEY)
    monkeypatch.setattr(limiter, "enabled", False)
    return create_application(db=db, catalog=catalog, overlay=overlay)


@pytest_asyncio.fixture
async def client(app):
    """Create test client over the ASGI app"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-API-Key": ADMIN_API_KEY}


@pytest.fixture
def sample_draft() -> Dict[str, Any]:
    """Save Draft payload as the admin UI sends it"""
    return {
        "fields": {
            "mandrel": "Available",
            "sBendCapability": "yes",
            "warrantyTier": "3 – lifetime frame warranty",
        },
        "evidence": [
            {
                "fieldKey": "mandrel",
                "sourceType": "web-page",
                "url": "https://example.com/m601/mandrel",
                "quotedText": "Mandrel kit available for the M601 frame",
            },
            {
                "fieldKey": "warrantyTier",
                "sourceType": "pdf",
                "url": "https://example.com/m601/warranty.pdf",
                "howGathered": "Owner's manual, page 2",
            },
        ],
    }
