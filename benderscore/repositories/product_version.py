"""
Product version repository: draft/published rows and their field evidence
"""

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import col, func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from benderscore.core.exceptions import ConflictError, VersionConflictError
from benderscore.core.logging import log
from benderscore.models import ProductFieldEvidence, ProductVersion, VersionStatus, as_utc, utc_now
from benderscore.repositories.base import BaseRepository


class ProductVersionRepository(BaseRepository[ProductVersion]):
    """Persistence for product versions; callers own the transaction"""

    def __init__(self, session: AsyncSession):
        super().__init__(ProductVersion, session)

    async def get_draft(self, product_id: str, for_update: bool = False) -> Optional[ProductVersion]:
        """The product's single draft row, optionally locked for the rest of the transaction"""
        statement = select(ProductVersion).where(
            ProductVersion.product_id == product_id,
            ProductVersion.status == VersionStatus.DRAFT.value,
        )
        if for_update:
            statement = statement.with_for_update()
        result = await self.session.exec(statement)
        return result.first()

    async def get_latest_published(self, product_id: str) -> Optional[ProductVersion]:
        statement = (
            select(ProductVersion)
            .where(
                ProductVersion.product_id == product_id,
                ProductVersion.status == VersionStatus.PUBLISHED.value,
            )
            .order_by(col(ProductVersion.version).desc(), col(ProductVersion.updated_at).desc())
            .limit(1)
        )
        result = await self.session.exec(statement)
        return result.first()

    async def list_published(self, product_id: str) -> List[ProductVersion]:
        """Published history, newest first"""
        return await self.get_multi(
            limit=None,
            order_by="version",
            order_desc=True,
            filters={"product_id": product_id, "status": VersionStatus.PUBLISHED.value},
        )

    async def get_latest_published_for_products(self, product_ids: Iterable[str]) -> Dict[str, ProductVersion]:
        """Highest published version per product in one query"""
        ids = sorted({product_id for product_id in product_ids if product_id})
        if not ids:
            return {}

        latest = (
            select(ProductVersion.product_id, func.max(ProductVersion.version).label("max_version"))
            .where(
                col(ProductVersion.product_id).in_(ids),
                ProductVersion.status == VersionStatus.PUBLISHED.value,
            )
            .group_by(ProductVersion.product_id)
            .subquery()
        )
        statement = select(ProductVersion).join(
            latest,
            (ProductVersion.product_id == latest.c.product_id) & (ProductVersion.version == latest.c.max_version),
        ).where(ProductVersion.status == VersionStatus.PUBLISHED.value)
        result = await self.session.exec(statement)
        return {row.product_id: row for row in result.all()}

    async def next_version(self, product_id: str) -> int:
        """1 + the highest published version for the product (0 when none)"""
        statement = select(func.coalesce(func.max(ProductVersion.version), 0)).where(
            ProductVersion.product_id == product_id,
            ProductVersion.status == VersionStatus.PUBLISHED.value,
        )
        result = await self.session.exec(statement)
        return int(result.one()) + 1

    async def upsert_draft(
        self, product_id: str, fields: Dict[str, Any], score: Optional[Dict[str, Any]], actor: str
    ) -> ProductVersion:
        """Create or overwrite the product's draft row"""
        draft = await self.get_draft(product_id, for_update=True)
        if draft is None:
            return await self.create(
                product_id=product_id,
                status=VersionStatus.DRAFT.value,
                version=0,
                fields_json=fields,
                score_json=score,
                created_by=actor,
            )
        return await self.update(draft, {"fields_json": fields, "score_json": score, "created_by": actor})

    async def insert_published(self, draft: ProductVersion, version: int, actor: str) -> ProductVersion:
        """Insert an immutable published snapshot of ``draft``"""
        try:
            return await self.create(
                product_id=draft.product_id,
                status=VersionStatus.PUBLISHED.value,
                version=version,
                fields_json=dict(draft.fields_json or {}),
                score_json=dict(draft.score_json) if draft.score_json is not None else None,
                created_by=actor,
            )
        except ConflictError as e:
            log.warning("Published version already taken", product_id=draft.product_id, version=version)
            raise VersionConflictError(product_id=draft.product_id, version=version) from e

    # Evidence

    async def get_active_evidence(self, version_id: UUID) -> List[ProductFieldEvidence]:
        statement = (
            select(ProductFieldEvidence)
            .where(
                ProductFieldEvidence.product_version_id == version_id,
                ProductFieldEvidence.is_active == True,  # noqa: E712
            )
            .order_by(col(ProductFieldEvidence.verified_at).desc(), col(ProductFieldEvidence.created_at).desc())
        )
        result = await self.session.exec(statement)
        return list(result.all())

    async def replace_evidence(self, version_id: UUID, items: List[Dict[str, Any]]) -> List[ProductFieldEvidence]:
        """Delete every evidence row of the version and insert ``items``"""
        await self.session.execute(
            delete(ProductFieldEvidence).where(ProductFieldEvidence.product_version_id == version_id)
        )
        rows = [ProductFieldEvidence(product_version_id=version_id, **item) for item in items]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def copy_evidence(self, source_version_id: UUID, target_version_id: UUID) -> int:
        """Copy active evidence to another version with fresh row timestamps"""
        now = utc_now()
        copies = [
            ProductFieldEvidence(
                product_version_id=target_version_id,
                field_key=row.field_key,
                source_type=row.source_type,
                url=row.url,
                quoted_text=row.quoted_text,
                how_gathered=row.how_gathered,
                notes=row.notes,
                verified_by=row.verified_by,
                verified_at=as_utc(row.verified_at),
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            for row in await self.get_active_evidence(source_version_id)
        ]
        self.session.add_all(copies)
        await self.session.flush()
        return len(copies)
