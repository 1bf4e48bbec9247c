"""
Admin endpoints: draft/publish workflow and overlay edits
All routes require the X-API-Key header
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends, Path, Request
from fastapi.concurrency import run_in_threadpool
from slowapi import Limiter

from benderscore.api.deps import ActorDep, OverlayMergeDep, OverlayStoreDep, VersionServiceDep
from benderscore.core.config import settings
from benderscore.core.exceptions import ErrorResponse, NotFoundError
from benderscore.core.security import get_client_ip, verify_admin_api_key
from benderscore.schemas.version import (
    DraftResponse,
    OverlayReloadResponse,
    OverlayResponse,
    PublishedResponse,
    PublishResponse,
    SaveDraftRequest,
    SaveDraftResponse,
    VersionHistoryResponse,
)
from benderscore.services.overlay import OverlayMerge

# Rate limiter
limiter = Limiter(key_func=get_client_ip, enabled=settings.rate_limit_enabled)

router = APIRouter(
    dependencies=[Depends(verify_admin_api_key)],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        404: {"model": ErrorResponse, "description": "Unknown product"},
    },
)

ProductId = Annotated[str, Path(min_length=1, max_length=200, description="Catalog product id")]


def _require_product(merge: OverlayMerge, product_id: str) -> None:
    if product_id not in merge.product_ids():
        raise NotFoundError(f"Product {product_id} not found", product_id=product_id)


@router.put("/products/{product_id}/draft", response_model=SaveDraftResponse)
@limiter.limit(settings.admin_write_rate_limit)
async def save_draft(
    request: Request,
    body: SaveDraftRequest,
    versions: VersionServiceDep,
    merge: OverlayMergeDep,
    actor: ActorDep,
    product_id: ProductId,
) -> SaveDraftResponse:
    """Upsert the product's draft and replace its evidence"""
    _require_product(merge, product_id)
    draft_id = await versions.save_draft(product_id, body.fields, body.evidence, actor, score=body.score)
    return SaveDraftResponse(draft_version_id=draft_id)


@router.get("/products/{product_id}/draft", response_model=DraftResponse)
@limiter.limit(settings.admin_read_rate_limit)
async def get_draft(request: Request, versions: VersionServiceDep, product_id: ProductId) -> DraftResponse:
    """Current draft and its evidence; ``draft`` is null when there is none"""
    return await versions.get_draft(product_id)


@router.post(
    "/products/{product_id}/publish",
    response_model=PublishResponse,
    responses={409: {"model": ErrorResponse, "description": "No draft to publish, or publish conflict"}},
)
@limiter.limit(settings.admin_write_rate_limit)
async def publish(
    request: Request, versions: VersionServiceDep, actor: ActorDep, product_id: ProductId
) -> PublishResponse:
    """Publish the current draft as the next version (409 when there is no draft)"""
    return await versions.publish(product_id, actor)


@router.get("/products/{product_id}/published", response_model=PublishedResponse)
@limiter.limit(settings.admin_read_rate_limit)
async def get_published(
    request: Request, versions: VersionServiceDep, product_id: ProductId
) -> PublishedResponse:
    return await versions.get_latest_published(product_id)


@router.get("/products/{product_id}/versions", response_model=VersionHistoryResponse)
@limiter.limit(settings.admin_read_rate_limit)
async def list_versions(
    request: Request, versions: VersionServiceDep, product_id: ProductId
) -> VersionHistoryResponse:
    """Published history, newest first"""
    return await versions.list_published_versions(product_id)


@router.patch("/overlay/{product_id}", response_model=OverlayResponse)
@limiter.limit(settings.admin_write_rate_limit)
async def patch_overlay(
    request: Request,
    overlay: OverlayStoreDep,
    merge: OverlayMergeDep,
    product_id: ProductId,
    patch: Dict[str, Any] = Body(...),
) -> OverlayResponse:
    """Shallow-merge fields into the product's overlay"""
    _require_product(merge, product_id)
    # File writes stay off the event loop
    updated = await run_in_threadpool(overlay.update, product_id, patch)
    return OverlayResponse(product_id=product_id, overlay=updated)


@router.delete("/overlay/{product_id}", response_model=OverlayResponse)
@limiter.limit(settings.admin_write_rate_limit)
async def clear_overlay(request: Request, overlay: OverlayStoreDep, product_id: ProductId) -> OverlayResponse:
    if not await run_in_threadpool(overlay.clear, product_id):
        raise NotFoundError(f"No overlay for product {product_id}", product_id=product_id)
    return OverlayResponse(product_id=product_id, overlay={})


@router.post("/overlay/reload", response_model=OverlayReloadResponse)
@limiter.limit(settings.admin_write_rate_limit)
async def reload_overlay(request: Request, overlay: OverlayStoreDep) -> OverlayReloadResponse:
    """Re-read the overlay file from disk"""
    return OverlayReloadResponse(products=await run_in_threadpool(overlay.reload))
