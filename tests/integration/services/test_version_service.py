"""
Integration tests for the draft/publish workflow against SQLite
"""

from datetime import datetime, timedelta, timezone

import pytest

from benderscore.core.exceptions import NoDraftError, VersionConflictError
from benderscore.models import as_utc
from benderscore.repositories.product_version import ProductVersionRepository
from benderscore.schemas.version import EvidenceIn
from benderscore.services.version_service import VersionService

PRODUCT_ID = "roguefab-m601"
ACTOR = "admin:test"


def evidence(field_key: str, **extra) -> EvidenceIn:
    return EvidenceIn(field_key=field_key, source_type="web-page", url=f"https://example.com/{field_key}", **extra)


async def test_get_draft_when_none(version_service):
    response = await version_service.get_draft(PRODUCT_ID)
    assert response.draft is None
    assert response.evidence == []


async def test_publish_without_draft_fails_and_creates_nothing(version_service):
    with pytest.raises(NoDraftError):
        await version_service.publish(PRODUCT_ID, ACTOR)

    history = await version_service.list_published_versions(PRODUCT_ID)
    assert history.versions == []
    assert (await version_service.get_latest_published(PRODUCT_ID)).published is None


async def test_save_draft_upserts_single_row(version_service, db):
    first = await version_service.save_draft(PRODUCT_ID, {"mandrel": "No"}, [], ACTOR)
    second = await version_service.save_draft(PRODUCT_ID, {"mandrel": "Available"}, [], "admin:other")

    assert first == second
    draft = (await version_service.get_draft(PRODUCT_ID)).draft
    assert draft.fields == {"mandrel": "Available"}
    assert draft.status == "draft"
    assert draft.version == 0
    assert draft.created_by == "admin:other"

    async with db.session() as session:
        count = await ProductVersionRepository(session).count(filters={"product_id": PRODUCT_ID})
    assert count == 1


async def test_save_draft_computes_score_snapshot(version_service):
    await version_service.save_draft(PRODUCT_ID, {"mandrel": "Available"}, [], ACTOR)
    draft = (await version_service.get_draft(PRODUCT_ID)).draft

    assert draft.score["source"] == "computed"
    mandrel = next(item for item in draft.score["breakdown"] if item["key"] == "mandrel")
    assert mandrel["points"] == 4


async def test_save_draft_keeps_provided_score(version_service):
    await version_service.save_draft(PRODUCT_ID, {}, [], ACTOR, score={"total": 42})
    assert (await version_service.get_draft(PRODUCT_ID)).draft.score == {"total": 42}


async def test_save_draft_replaces_evidence(version_service):
    await version_service.save_draft(PRODUCT_ID, {}, [evidence("mandrel"), evidence("warrantyTier")], ACTOR)
    await version_service.save_draft(PRODUCT_ID, {}, [evidence("bendAngle")], ACTOR)

    rows = (await version_service.get_draft(PRODUCT_ID)).evidence
    assert [row.field_key for row in rows] == ["bendAngle"]
    assert rows[0].verified_by == ACTOR
    assert rows[0].is_active is True


async def test_evidence_keeps_supplied_verifier(version_service):
    verified_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    await version_service.save_draft(
        PRODUCT_ID,
        {},
        [evidence("mandrel", verified_by="jane", verified_at=verified_at)],
        ACTOR,
    )

    (row,) = (await version_service.get_draft(PRODUCT_ID)).evidence
    assert row.verified_by == "jane"
    # Normalised to UTC; SQLite hands the value back without tzinfo
    assert as_utc(row.verified_at) == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


async def test_publish_numbers_versions_sequentially(version_service):
    for expected in range(1, 5):
        await version_service.save_draft(PRODUCT_ID, {"revision": expected}, [], ACTOR)
        result = await version_service.publish(PRODUCT_ID, ACTOR)
        assert result.version == expected
        assert result.product_id == PRODUCT_ID
        assert result.actor == ACTOR

    history = await version_service.list_published_versions(PRODUCT_ID)
    assert [row.version for row in history.versions] == [4, 3, 2, 1]
    assert [row.fields["revision"] for row in history.versions] == [4, 3, 2, 1]

    latest = (await version_service.get_latest_published(PRODUCT_ID)).published
    assert latest.version == 4


async def test_republish_without_edits_and_evidence_per_version(version_service, db):
    fields = {"mandrel": "Available", "warrantyTier": 3}
    await version_service.save_draft(PRODUCT_ID, fields, [evidence("mandrel")], ACTOR)
    results = [await version_service.publish(PRODUCT_ID, ACTOR)]

    await version_service.save_draft(PRODUCT_ID, fields, [evidence("mandrel"), evidence("warrantyTier")], ACTOR)
    results.append(await version_service.publish(PRODUCT_ID, ACTOR))

    # No draft edits between these publishes
    results.append(await version_service.publish(PRODUCT_ID, ACTOR))
    results.append(await version_service.publish(PRODUCT_ID, ACTOR))

    assert [result.version for result in results] == [1, 2, 3, 4]
    assert len({result.published_version_id for result in results}) == 4

    history = await version_service.list_published_versions(PRODUCT_ID)
    assert [row.version for row in history.versions] == [4, 3, 2, 1]
    assert all(row.fields == fields for row in history.versions)
    assert history.versions[0].score == history.versions[1].score

    async with db.session() as session:
        repo = ProductVersionRepository(session)
        evidence_keys = {
            result.version: sorted(row.field_key for row in await repo.get_active_evidence(result.published_version_id))
            for result in results
        }
    assert evidence_keys == {
        1: ["mandrel"],
        2: ["mandrel", "warrantyTier"],
        3: ["mandrel", "warrantyTier"],
        4: ["mandrel", "warrantyTier"],
    }


async def test_publish_snapshots_draft_and_keeps_it(version_service):
    await version_service.save_draft(PRODUCT_ID, {"mandrel": "Available"}, [], ACTOR)
    await version_service.publish(PRODUCT_ID, ACTOR)

    # The draft keeps diverging independently of what was published
    await version_service.save_draft(PRODUCT_ID, {"mandrel": "No"}, [], ACTOR)

    published = (await version_service.get_latest_published(PRODUCT_ID)).published
    draft = (await version_service.get_draft(PRODUCT_ID)).draft
    assert published.fields == {"mandrel": "Available"}
    assert published.status == "published"
    assert draft.fields == {"mandrel": "No"}
    assert draft.id != published.id


async def test_publish_copies_evidence(version_service):
    await version_service.save_draft(PRODUCT_ID, {}, [evidence("mandrel"), evidence("warrantyTier")], ACTOR)
    result = await version_service.publish(PRODUCT_ID, ACTOR)

    published = await version_service.get_latest_published(PRODUCT_ID)
    draft = await version_service.get_draft(PRODUCT_ID)

    assert published.published.id == result.published_version_id
    assert sorted(row.field_key for row in published.evidence) == ["mandrel", "warrantyTier"]
    assert all(row.product_version_id == result.published_version_id for row in published.evidence)
    # Copied, not moved
    assert len(draft.evidence) == 2
    assert {row.id for row in draft.evidence}.isdisjoint({row.id for row in published.evidence})


async def test_publish_retries_after_version_conflict(version_service, monkeypatch):
    await version_service.save_draft(PRODUCT_ID, {"revision": 1}, [], ACTOR)
    await version_service.publish(PRODUCT_ID, ACTOR)
    await version_service.save_draft(PRODUCT_ID, {"revision": 2}, [], ACTOR)

    real_next_version = ProductVersionRepository.next_version
    calls = []

    async def stale_next_version(self, product_id):
        calls.append(product_id)
        if len(calls) == 1:
            # Another publish already took version 1
            return 1
        return await real_next_version(self, product_id)

    monkeypatch.setattr(ProductVersionRepository, "next_version", stale_next_version)

    result = await version_service.publish(PRODUCT_ID, ACTOR)

    assert result.version == 2
    assert len(calls) == 2
    history = await version_service.list_published_versions(PRODUCT_ID)
    assert [row.version for row in history.versions] == [2, 1]


async def test_publish_gives_up_after_max_attempts(db, merge, monkeypatch):
    service = VersionService(db=db, merge=merge, max_publish_attempts=2)
    await service.save_draft(PRODUCT_ID, {}, [evidence("mandrel")], ACTOR)
    await service.publish(PRODUCT_ID, ACTOR)

    async def always_stale(self, product_id):
        return 1

    monkeypatch.setattr(ProductVersionRepository, "next_version", always_stale)

    with pytest.raises(VersionConflictError):
        await service.publish(PRODUCT_ID, ACTOR)

    # Failed attempts leave no partial rows behind
    published = await service.get_latest_published(PRODUCT_ID)
    assert published.published.version == 1
    assert len(published.evidence) == 1


async def test_latest_published_for_products(version_service):
    for product_id, publishes in (("roguefab-m601", 2), ("jd2-model-32", 1)):
        for revision in range(publishes):
            await version_service.save_draft(product_id, {"revision": revision}, [], ACTOR)
            await version_service.publish(product_id, ACTOR)
    await version_service.save_draft("hossfeld-no2", {"revision": 0}, [], ACTOR)

    latest = await version_service.get_latest_published_for_products(
        ["roguefab-m601", "jd2-model-32", "hossfeld-no2"]
    )

    assert set(latest) == {"roguefab-m601", "jd2-model-32"}
    assert latest["roguefab-m601"].version == 2
    assert latest["roguefab-m601"].fields == {"revision": 1}
    assert latest["jd2-model-32"].version == 1
    assert await version_service.get_latest_published_for_products([]) == {}
