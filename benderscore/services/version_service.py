"""
Draft/publish workflow for product data

States per product: no draft -> draft -> published(v1) -> draft -> published(v2) ...
Every operation runs in exactly one transaction; publish is retried in a
fresh transaction when a concurrent publish took the same version number.
"""

from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from benderscore.core.config import settings
from benderscore.core.database import DatabaseSessionManager, db_manager
from benderscore.core.exceptions import NoDraftError, VersionConflictError
from benderscore.core.logging import log
from benderscore.models import as_utc, utc_now
from benderscore.repositories.product_version import ProductVersionRepository
from benderscore.schemas.version import (
    DraftResponse,
    EvidenceIn,
    EvidenceRead,
    ProductVersionRead,
    PublishedResponse,
    PublishResponse,
    VersionHistoryResponse,
)
from benderscore.services.overlay import OverlayMerge, merge_record
from benderscore.services.product_score_service import score_record


class VersionService:
    """Service layer for the draft -> evidence -> publish workflow"""

    def __init__(
        self,
        db: DatabaseSessionManager = db_manager,
        merge: Optional[OverlayMerge] = None,
        max_publish_attempts: Optional[int] = None,
    ):
        self.db = db
        self.merge = merge
        self.max_publish_attempts = max_publish_attempts or settings.publish_max_attempts

    async def save_draft(
        self,
        product_id: str,
        fields: Dict[str, Any],
        evidence: Iterable[EvidenceIn],
        actor: str,
        score: Optional[Dict[str, Any]] = None,
    ) -> UUID:
        """Upsert the product's draft and replace its evidence in one transaction"""
        if score is None:
            score = self._score_snapshot(product_id, fields)

        now = utc_now()
        items = [
            {
                "field_key": item.field_key,
                "source_type": item.source_type.value,
                "url": item.url,
                "quoted_text": item.quoted_text,
                "how_gathered": item.how_gathered,
                "notes": item.notes,
                "verified_by": item.verified_by or actor,
                "verified_at": as_utc(item.verified_at) or now,
            }
            for item in evidence
        ]

        async with self.db.transaction() as session:
            repo = ProductVersionRepository(session)
            draft = await repo.upsert_draft(product_id, fields, score, actor)
            await repo.replace_evidence(draft.id, items)

        log.info("Saved draft", product_id=product_id, draft_id=str(draft.id), evidence=len(items), actor=actor)
        return draft.id

    async def get_draft(self, product_id: str) -> DraftResponse:
        async with self.db.session() as session:
            repo = ProductVersionRepository(session)
            draft = await repo.get_draft(product_id)
            if draft is None:
                return DraftResponse()
            evidence = await repo.get_active_evidence(draft.id)
            return DraftResponse(
                draft=ProductVersionRead.model_validate(draft),
                evidence=[EvidenceRead.model_validate(row) for row in evidence],
            )

    async def get_latest_published(self, product_id: str) -> PublishedResponse:
        async with self.db.session() as session:
            repo = ProductVersionRepository(session)
            published = await repo.get_latest_published(product_id)
            if published is None:
                return PublishedResponse()
            evidence = await repo.get_active_evidence(published.id)
            return PublishedResponse(
                published=ProductVersionRead.model_validate(published),
                evidence=[EvidenceRead.model_validate(row) for row in evidence],
            )

    async def get_latest_published_for_products(self, product_ids: Iterable[str]) -> Dict[str, ProductVersionRead]:
        async with self.db.session() as session:
            rows = await ProductVersionRepository(session).get_latest_published_for_products(product_ids)
            return {product_id: ProductVersionRead.model_validate(row) for product_id, row in rows.items()}

    async def list_published_versions(self, product_id: str) -> VersionHistoryResponse:
        async with self.db.session() as session:
            rows = await ProductVersionRepository(session).list_published(product_id)
            return VersionHistoryResponse(
                product_id=product_id,
                versions=[ProductVersionRead.model_validate(row) for row in rows],
            )

    async def publish(self, product_id: str, actor: str) -> PublishResponse:
        """
        Publish the current draft as the next version.

        Raises NoDraftError when the product has no draft. A version-number
        collision with a concurrent publish rolls the attempt back and starts
        over in a new transaction.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_publish_attempts),
            wait=wait_exponential(multiplier=0.05, max=0.5),
            retry=retry_if_exception_type(VersionConflictError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    log.info("Retrying publish", product_id=product_id, attempt=attempt.retry_state.attempt_number)
                result = await self._publish_once(product_id, actor)
        return result

    async def _publish_once(self, product_id: str, actor: str) -> PublishResponse:
        async with self.db.transaction() as session:
            repo = ProductVersionRepository(session)
            # Locks the draft row on databases that support it
            draft = await repo.get_draft(product_id, for_update=True)
            if draft is None:
                raise NoDraftError(product_id)

            version = await repo.next_version(product_id)
            published = await repo.insert_published(draft, version, actor)
            copied = await repo.copy_evidence(draft.id, published.id)

        log.info(
            "Published product version",
            product_id=product_id,
            version=version,
            published_version_id=str(published.id),
            evidence=copied,
            actor=actor,
        )
        return PublishResponse(
            published_version_id=published.id,
            product_id=product_id,
            version=version,
            published_at=published.created_at,
            actor=actor,
        )

    def _score_snapshot(self, product_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.merge is None:
            return None
        record = self.merge.merged_product(product_id, fields) or merge_record({"id": product_id}, None, fields)
        return score_record(product_id, record).model_dump(mode="json")


__all__ = ["VersionService"]
