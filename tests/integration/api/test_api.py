"""
API tests over the ASGI app with an in-memory database
"""

import json
import os

from httpx import AsyncClient

API = "/api/v1"
REQUEST_ID = "5f0c8e2a-1d3b-4c7e-9a6f-2b8d4e1c7a90"


def breakdown_points(score: dict) -> dict:
    return {item["key"]: item["points"] for item in score["breakdown"]}


class TestHealth:

    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get(f"{API}/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert "version" in data

    async def test_readiness(self, client: AsyncClient):
        response = await client.get(f"{API}/health/ready")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True, "catalog": True}

    async def test_root_endpoint(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert "name" in data
        assert "version" in data

    async def test_response_headers(self, client: AsyncClient):
        response = await client.get(f"{API}/health", headers={"X-Request-ID": REQUEST_ID})

        assert response.headers["X-Request-ID"] == REQUEST_ID
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "X-Process-Time" in response.headers

    async def test_request_id_generated_when_absent(self, client: AsyncClient):
        response = await client.get(f"{API}/health")

        assert response.headers["X-Request-ID"]
        assert "server" not in response.headers
        assert response.headers["Content-Security-Policy"].startswith("default-src 'none'")


class TestProducts:

    async def test_list_products_with_scores(self, client: AsyncClient):
        response = await client.get(f"{API}/products")

        assert response.status_code == 200
        products = {product["id"]: product for product in response.json()}
        assert set(products) == {"roguefab-m601", "jd2-model-32", "hossfeld-no2"}

        m601 = products["roguefab-m601"]
        assert m601["brand"] == "RogueFab"
        assert m601["dieShapes"] == ["Round tube", "Pipe", "Square tube"]
        assert m601["score"]["source"] == "computed"
        assert m601["score"]["published_version"] is None
        assert m601["score"]["total"] == sum(item["points"] for item in m601["score"]["breakdown"])

    async def test_list_survives_free_form_published_fields(self, client: AsyncClient, admin_headers):
        await client.put(
            f"{API}/admin/products/roguefab-m601/draft",
            json={"fields": {"name": {"en": "M601 deluxe"}, "brand": True, "mandrel": "Available"}},
            headers=admin_headers,
        )
        await client.post(f"{API}/admin/products/roguefab-m601/publish", headers=admin_headers)

        response = await client.get(f"{API}/products")

        assert response.status_code == 200
        products = {product["id"]: product for product in response.json()}
        assert len(products) == 3
        m601 = products["roguefab-m601"]
        assert m601["name"] is None
        assert m601["brand"] is None
        assert m601["score"]["published_version"] == 1
        assert breakdown_points(m601["score"])["mandrel"] == 4

    async def test_product_score(self, client: AsyncClient):
        response = await client.get(f"{API}/products/jd2-model-32/score")

        assert response.status_code == 200
        score = response.json()
        assert score["product_id"] == "jd2-model-32"
        assert score["clamped"] is False
        assert len(score["breakdown"]) == 14
        # $1,545 lower bound of the published range
        assert breakdown_points(score)["value_for_money"] == 16

    async def test_unknown_product(self, client: AsyncClient):
        response = await client.get(f"{API}/products/nope/score")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NotFoundError"

    async def test_methodology(self, client: AsyncClient):
        response = await client.get(f"{API}/scoring/methodology")

        assert response.status_code == 200
        data = response.json()
        assert data["total_points"] == 100
        assert sum(category["max_points"] for category in data["categories"]) == 100


class TestAdminAuth:

    async def test_missing_api_key(self, client: AsyncClient):
        response = await client.get(f"{API}/admin/products/roguefab-m601/draft")

        assert response.status_code == 401
        assert response.json()["error"]["type"] == "UnauthorizedError"

    async def test_invalid_api_key(self, client: AsyncClient):
        response = await client.post(
            f"{API}/admin/products/roguefab-m601/publish", headers={"X-API-Key": "wrong"}
        )
        assert response.status_code == 401


class TestDraftPublishFlow:

    async def test_get_draft_when_none(self, client: AsyncClient, admin_headers):
        response = await client.get(f"{API}/admin/products/roguefab-m601/draft", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"draft": None, "evidence": []}

    async def test_publish_without_draft_conflicts(self, client: AsyncClient, admin_headers):
        response = await client.post(f"{API}/admin/products/roguefab-m601/publish", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["type"] == "NoDraftError"

        versions = await client.get(f"{API}/admin/products/roguefab-m601/versions", headers=admin_headers)
        assert versions.json()["versions"] == []

    async def test_draft_for_unknown_product(self, client: AsyncClient, admin_headers, sample_draft):
        response = await client.put(f"{API}/admin/products/nope/draft", json=sample_draft, headers=admin_headers)
        assert response.status_code == 404

    async def test_invalid_evidence_source_type(self, client: AsyncClient, admin_headers):
        payload = {"fields": {}, "evidence": [{"fieldKey": "mandrel", "sourceType": "rumour"}]}
        response = await client.put(
            f"{API}/admin/products/roguefab-m601/draft", json=payload, headers=admin_headers
        )
        assert response.status_code == 422

    async def test_save_publish_and_score(self, client: AsyncClient, admin_headers, sample_draft):
        before = await client.get(f"{API}/products/roguefab-m601/score")
        assert breakdown_points(before.json())["mandrel"] == 0

        saved = await client.put(
            f"{API}/admin/products/roguefab-m601/draft", json=sample_draft, headers=admin_headers
        )
        assert saved.status_code == 200
        draft_id = saved.json()["draft_version_id"]

        draft = (await client.get(f"{API}/admin/products/roguefab-m601/draft", headers=admin_headers)).json()
        assert draft["draft"]["id"] == draft_id
        assert draft["draft"]["fields"] == sample_draft["fields"]
        assert len(draft["evidence"]) == 2
        assert all(row["verified_by"].startswith("admin:") for row in draft["evidence"])

        # Drafts do not affect public scores
        unpublished = await client.get(f"{API}/products/roguefab-m601/score")
        assert breakdown_points(unpublished.json())["mandrel"] == 0

        published = await client.post(f"{API}/admin/products/roguefab-m601/publish", headers=admin_headers)
        assert published.status_code == 200
        body = published.json()
        assert body["version"] == 1
        assert body["product_id"] == "roguefab-m601"
        assert body["actor"].startswith("admin:")

        after = (await client.get(f"{API}/products/roguefab-m601/score")).json()
        points = breakdown_points(after)
        assert after["published_version"] == 1
        assert points["mandrel"] == 4
        assert points["s_bend"] == 3
        assert points["warranty"] == 3

        latest = (await client.get(f"{API}/admin/products/roguefab-m601/published", headers=admin_headers)).json()
        assert latest["published"]["version"] == 1
        assert len(latest["evidence"]) == 2

        second = await client.post(f"{API}/admin/products/roguefab-m601/publish", headers=admin_headers)
        assert second.json()["version"] == 2

        history = (await client.get(f"{API}/admin/products/roguefab-m601/versions", headers=admin_headers)).json()
        assert [row["version"] for row in history["versions"]] == [2, 1]


class TestOverlay:

    async def test_overlay_patch_changes_score(self, client: AsyncClient, admin_headers):
        response = await client.patch(
            f"{API}/admin/overlay/jd2-model-32",
            json={"mandrel": "Available", "dieShapes": "Round tube, EMT"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["overlay"] == {"mandrel": "Available", "dieShapes": "Round tube, EMT"}

        score = (await client.get(f"{API}/products/jd2-model-32/score")).json()
        points = breakdown_points(score)
        assert points["mandrel"] == 4
        assert points["die_shapes"] == 2

    async def test_published_fields_override_overlay(self, client: AsyncClient, admin_headers):
        await client.patch(
            f"{API}/admin/overlay/hossfeld-no2", json={"warrantyTier": 1}, headers=admin_headers
        )
        await client.put(
            f"{API}/admin/products/hossfeld-no2/draft",
            json={"fields": {"warrantyTier": 3}},
            headers=admin_headers,
        )
        await client.post(f"{API}/admin/products/hossfeld-no2/publish", headers=admin_headers)

        score = (await client.get(f"{API}/products/hossfeld-no2/score")).json()
        assert breakdown_points(score)["warranty"] == 3

    async def test_clear_overlay(self, client: AsyncClient, admin_headers):
        await client.patch(f"{API}/admin/overlay/jd2-model-32", json={"mandrel": "Available"}, headers=admin_headers)

        cleared = await client.delete(f"{API}/admin/overlay/jd2-model-32", headers=admin_headers)
        assert cleared.status_code == 200

        again = await client.delete(f"{API}/admin/overlay/jd2-model-32", headers=admin_headers)
        assert again.status_code == 404

    async def test_overlay_for_unknown_product(self, client: AsyncClient, admin_headers):
        response = await client.patch(f"{API}/admin/overlay/nope", json={"mandrel": "Available"}, headers=admin_headers)
        assert response.status_code == 404

    async def test_reload_memory_overlay(self, client: AsyncClient, admin_headers):
        response = await client.post(f"{API}/admin/overlay/reload", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"products": 0}

    async def test_overlay_patch_is_written_to_file(self, client: AsyncClient, admin_headers, overlay, tmp_path):
        overlay.path = tmp_path / "overlay.json"

        response = await client.patch(
            f"{API}/admin/overlay/jd2-model-32", json={"mandrel": "Available"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert json.loads(overlay.path.read_text()) == {"jd2-model-32": {"mandrel": "Available"}}

    async def test_failed_overlay_write_does_not_change_scores(
        self, client: AsyncClient, admin_headers, overlay, tmp_path, monkeypatch
    ):
        overlay.path = tmp_path / "overlay.json"

        def broken_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", broken_replace)

        response = await client.patch(
            f"{API}/admin/overlay/jd2-model-32", json={"mandrel": "Available"}, headers=admin_headers
        )
        assert response.status_code == 503
        assert response.json()["error"]["type"] == "DataSourceError"

        score = (await client.get(f"{API}/products/jd2-model-32/score")).json()
        assert breakdown_points(score)["mandrel"] == 0


class TestAdminAttribution:

    async def test_forwarded_for_is_ignored_by_default(self, client: AsyncClient, admin_headers, sample_draft):
        headers = {**admin_headers, "X-Forwarded-For": "203.0.113.9"}
        await client.put(f"{API}/admin/products/roguefab-m601/draft", json=sample_draft, headers=headers)

        published = (await client.post(f"{API}/admin/products/roguefab-m601/publish", headers=headers)).json()

        assert published["actor"].startswith("admin:")
        assert "203.0.113.9" not in published["actor"]
