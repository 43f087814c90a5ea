"""Tests for the HTTP routes, with the pipeline swapped for a scripted one."""

import httpx
import pytest
from fastapi.testclient import TestClient

from adlens.analyzer.pipeline import DashboardPipeline
from adlens.api.deps import get_meta_client, get_pipeline
from adlens.connectors.meta.client import MetaClient
from adlens.connectors.store.client import StoreClient
from adlens.core.state_store import MemoryStateStore
from adlens.main import app

from conftest import FakeMeta, FakeStore, make_record, workbook_bytes


@pytest.fixture
def store():
    return FakeStore(grid=[
        ["Date", "Campaign Name", "Spent", "CPC", "ROAS", "CVR", "CPA"],
        ["2024-01-01", "Camp A", 100, 2, 0.5, 0.1, 20],
        ["2024-01-02", "Camp A", 300, 3, 1, 0.1, 30],
        ["2024-01-02", "Camp B", 50, 1, 2, 0.1, 10],
    ])


@pytest.fixture
def pipeline(store, no_meta):
    return DashboardPipeline(
        store_factory=lambda: StoreClient(
            url="https://store.test/exec", transport=httpx.MockTransport(store)
        ),
        meta_factory=lambda: MetaClient(transport=httpx.MockTransport(FakeMeta())),
        state=MemoryStateStore(),
    )


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert resp.json()["meta_configured"] is False


class TestFlows:
    def test_reload(self, client, pipeline):
        resp = client.post("/data/reload")
        assert resp.status_code == 200
        body = resp.json()
        assert body["operation"] == "reload"
        assert body["record_count"] == 3
        assert len(pipeline.records) == 3

    def test_reload_store_error_is_502(self, client, store):
        store.fail_get = "Sheet missing"
        resp = client.post("/data/reload")
        assert resp.status_code == 502
        assert "Sheet missing" in resp.json()["detail"]

    def test_save_empty_is_502(self, client):
        resp = client.post("/data/save")
        assert resp.status_code == 502
        assert "No data to save" in resp.json()["detail"]

    def test_import(self, client, store):
        content = workbook_bytes([["Date", "Campaign", "Spent"], ["2024-01-03", "Camp C", 10]])
        resp = client.post(
            "/data/import",
            files={"file": ("report.xlsx", content, "application/octet-stream")},
        )
        assert resp.status_code == 200
        assert resp.json()["imported_rows"] == 1
        assert resp.json()["saved"] is True
        assert len(store.posts) == 1

    def test_import_corrupt_is_400(self, client):
        resp = client.post(
            "/data/import",
            files={"file": ("report.xlsx", b"garbage", "application/octet-stream")},
        )
        assert resp.status_code == 400

    def test_sync_meta_unconfigured_is_400(self, client, pipeline):
        pipeline.replace_records([make_record()])
        resp = client.post("/data/sync-meta", json={})
        assert resp.status_code == 400
        assert "not configured" in resp.json()["detail"]

    def test_sync_meta_rejects_bad_date(self, client):
        resp = client.post("/data/sync-meta", json={"start_date": "01/02/2024"})
        assert resp.status_code == 422


class TestViews:
    @pytest.fixture(autouse=True)
    def loaded(self, client):
        client.post("/data/reload")

    def test_info(self, client):
        body = client.get("/data/info").json()
        assert body["record_count"] == 3
        assert body["campaigns"] == ["Camp A", "Camp B"]

    def test_records_date_filter(self, client):
        body = client.get("/data/records", params={"start_date": "2024-01-02"}).json()
        assert len(body) == 2

    def test_records_preset(self, client, pipeline):
        body = client.get("/data/records", params={"preset": "7d"}).json()
        assert len(body) == 3
        assert pipeline.state.get("date_window") is None

    def test_unknown_preset_is_400(self, client):
        resp = client.get("/data/records", params={"preset": "fortnight"})
        assert resp.status_code == 400
        assert "Unknown preset: fortnight" in resp.json()["detail"]

    def test_campaigns_weighted(self, client):
        body = client.get("/data/campaigns").json()
        assert [row["campaign_name"] for row in body] == ["Camp A", "Camp B"]
        assert body[0]["roas"] == pytest.approx(0.875)

    def test_campaigns_sort_ascending(self, client):
        body = client.get("/data/campaigns", params={"sort_field": "spent", "order": "asc"}).json()
        assert [row["spent"] for row in body] == [50.0, 400.0]

    def test_campaigns_unknown_sort_field(self, client):
        resp = client.get("/data/campaigns", params={"sort_field": "bogus"})
        assert resp.status_code == 400

    def test_timeseries(self, client):
        body = client.get("/data/timeseries", params={"selected_campaign": "Camp B"}).json()
        assert [row["date"] for row in body] == ["2024-01-01", "2024-01-02"]

    def test_summary_campaign_types(self, client):
        body = client.get("/data/summary", params=[("campaign_types", "Camp"), ("campaign_types", "B")]).json()
        assert body["total_spent"] == 50.0


class TestMetaRoutes:
    def test_validate_token_unconfigured(self, client):
        resp = client.get("/meta/validate-token")
        assert resp.status_code == 400
        assert "not configured" in resp.json()["detail"]

    def test_account_info_unconfigured(self, client):
        resp = client.get("/meta/account-info")
        assert resp.status_code == 400

    def _use_meta(self, handler):
        app.dependency_overrides[get_meta_client] = lambda: MetaClient(
            "tok", "123", transport=httpx.MockTransport(handler)
        )

    def test_validate_token(self, client):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={
                "data": {"is_valid": True, "expires_at": 0, "scopes": ["ads_read"], "app_id": "42"}
            })

        self._use_meta(handler)
        body = client.get("/meta/validate-token").json()
        assert body == {"valid": True, "expires_at": 0, "scopes": ["ads_read"], "app_id": "42"}
        assert seen[0].path.endswith("/debug_token")
        assert seen[0].params["input_token"] == "tok"

    def test_account_info(self, client):
        self._use_meta(lambda r: httpx.Response(200, json={
            "id": "act_123",
            "account_id": "123",
            "name": "Shop",
            "account_status": 1,
            "currency": "INR",
            "timezone_name": "Asia/Kolkata",
        }))
        body = client.get("/meta/account-info").json()
        assert body == {
            "account_id": "123",
            "name": "Shop",
            "account_status": 1,
            "currency": "INR",
            "timezone_name": "Asia/Kolkata",
        }

    def test_upstream_error_is_502(self, client):
        self._use_meta(lambda r: httpx.Response(
            400, json={"error": {"message": "Invalid OAuth access token.", "code": 190}}
        ))
        resp = client.get("/meta/account-info")
        assert resp.status_code == 502
        assert "Invalid OAuth access token." in resp.json()["detail"]
