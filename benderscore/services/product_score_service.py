"""
Product score read path
Catalog + overlay + latest published fields -> adapter -> engine
"""

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from benderscore.core.exceptions import NotFoundError
from benderscore.core.logging import log
from benderscore.schemas.score import ProductScore, ProductSummary
from benderscore.services.overlay import OverlayMerge
from benderscore.services.record_adapter import RecordAdapter, record_adapter
from benderscore.services.scoring_engine import ScoringEngine, scoring_engine

if TYPE_CHECKING:
    from benderscore.services.version_service import VersionService

SUMMARY_TEXT_FIELDS = ("name", "brand", "model")


def score_record(
    product_id: str,
    record: Mapping[str, Any],
    published_version: Optional[int] = None,
    engine: ScoringEngine = scoring_engine,
    adapter: RecordAdapter = record_adapter,
) -> ProductScore:
    """
    Score one merged record.

    Any unexpected failure degrades to an explicit "no score" result so a
    broken record never takes a page down with it.
    """
    try:
        result = engine.score(adapter.adapt(record))
    except Exception:
        log.opt(exception=True).error("Scoring failed, returning no score", product_id=product_id)
        return ProductScore(product_id=product_id, published_version=published_version)

    if result.clamped:
        log.warning("Score clamped to maximum", product_id=product_id, raw_total=result.raw_total)

    return ProductScore(
        product_id=product_id,
        total=result.total,
        source="computed",
        raw_total=result.raw_total,
        clamped=result.clamped,
        max_total=result.max_total,
        published_version=published_version,
        breakdown=result.breakdown,
    )


def build_summary(record: Mapping[str, Any], score: ProductScore) -> ProductSummary:
    """
    List entry for one merged record.

    Published fields are free-form, so display slots holding something other
    than text or a number are dropped rather than failing the whole listing.
    """
    values = {key: value for key, value in record.items() if key != "score"}
    for key in SUMMARY_TEXT_FIELDS:
        value = values.get(key)
        if isinstance(value, bool) or not isinstance(value, (str, int, float, type(None))):
            log.warning("Dropping non-text display field", product_id=score.product_id, field=key)
            values.pop(key)

    try:
        return ProductSummary(**values, score=score)
    except ValidationError:
        log.opt(exception=True).warning("Invalid merged record, listing id and score only", product_id=score.product_id)
        return ProductSummary(id=score.product_id, score=score)


class ProductScoreService:
    """Computes product scores on every read; nothing here is cached or stored"""

    def __init__(
        self,
        merge: OverlayMerge,
        versions: "VersionService",
        engine: ScoringEngine = scoring_engine,
        adapter: RecordAdapter = record_adapter,
    ):
        self.merge = merge
        self.versions = versions
        self.engine = engine
        self.adapter = adapter

    async def get_score(self, product_id: str) -> ProductScore:
        published = (await self.versions.get_latest_published(product_id)).published
        record = self.merge.merged_product(product_id, published.fields if published else None)
        if record is None:
            raise NotFoundError(f"Product {product_id} not found", product_id=product_id)

        return score_record(
            product_id,
            record,
            published_version=published.version if published else None,
            engine=self.engine,
            adapter=self.adapter,
        )

    async def list_products(self) -> List[ProductSummary]:
        """Merged catalog with a score for every product"""
        published = await self.versions.get_latest_published_for_products(self.merge.product_ids())
        fields_by_id: Dict[str, Dict[str, Any]] = {
            product_id: row.fields for product_id, row in published.items()
        }

        summaries = []
        for record in self.merge.merged_products(fields_by_id):
            product_id = record["id"]
            version = published.get(product_id)
            score = score_record(
                product_id,
                record,
                published_version=version.version if version else None,
                engine=self.engine,
                adapter=self.adapter,
            )
            summaries.append(build_summary(record, score))
        return summaries
