"""Shared fixtures and builders for the ADLENS test suite."""

import io
import json

import httpx
import pytest
from openpyxl import Workbook

from adlens.config import settings
from adlens.models.record_models import CampaignRecord


def make_record(
    date="2024-01-01",
    campaign_name="Camp A",
    spent=100.0,
    cpc=2.0,
    roas=1.0,
    cvr=0.1,
    cpa=20.0,
    **extra,
) -> CampaignRecord:
    """Build a record with counts derived the same way the row mapper does."""
    values = dict(
        date=date,
        campaign_name=campaign_name,
        spent=spent,
        cpc=cpc,
        roas=roas,
        cvr=cvr,
        cpa=cpa,
        clicks=spent / cpc if cpc > 0 else 0.0,
        conversions=spent / cpa if cpa > 0 else 0.0,
        revenue=spent * roas,
    )
    values.update(extra)
    return CampaignRecord(**values)


def workbook_bytes(rows) -> bytes:
    """Serialize rows (header first) into an in-memory .xlsx file."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def insight_row(date, campaign, spend="10.00", impressions="1000", reach="500",
                link_clicks=None, purchases=None, campaign_id="c1"):
    """Build one raw Meta insight entry."""
    actions = []
    if link_clicks is not None:
        actions.append({"action_type": "link_click", "value": str(link_clicks)})
    if purchases is not None:
        actions.append({"action_type": "omni_purchase", "value": str(purchases)})
    return {
        "date_start": date,
        "date_stop": date,
        "campaign_id": campaign_id,
        "campaign_name": campaign,
        "spend": spend,
        "impressions": impressions,
        "reach": reach,
        "actions": actions,
    }


class FakeMeta:
    """Scripted insights endpoint: one or two pages per time range."""

    def __init__(self, rows_by_range=None, pages=1, error=None):
        self.rows_by_range = rows_by_range or {}
        self.pages = pages
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        time_range = params.get("time_range")
        after = params.get("after")
        self.requests.append(
            {
                "path": request.url.path,
                "time_range": json.loads(time_range) if time_range else None,
                "date_preset": params.get("date_preset"),
                "after": after,
                "params": dict(params),
            }
        )
        if self.error is not None:
            return httpx.Response(400, json={"error": self.error})

        key = (
            (json.loads(time_range)["since"], json.loads(time_range)["until"])
            if time_range
            else "maximum"
        )
        rows = self.rows_by_range.get(key, [])
        if self.pages == 2 and after is None:
            half = len(rows) // 2
            next_url = str(request.url.copy_add_param("after", "page2"))
            return httpx.Response(
                200, json={"data": rows[:half], "paging": {"next": next_url}}
            )
        if self.pages == 2:
            rows = rows[len(rows) // 2:]
        return httpx.Response(200, json={"data": rows, "paging": {}})


class FakeStore:
    """Scripted spreadsheet web app holding one grid."""

    def __init__(self, grid=None, fail_get=None, fail_post=None):
        self.grid = grid
        self.fail_get = fail_get
        self.fail_post = fail_post
        self.posts = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if self.fail_get:
                return httpx.Response(200, json={"status": "error", "message": self.fail_get})
            return httpx.Response(200, json={"status": "success", "data": self.grid or []})
        body = json.loads(request.content)
        self.posts.append(body)
        if self.fail_post:
            return httpx.Response(200, json={"status": "error", "message": self.fail_post})
        self.grid = body["values"]
        return httpx.Response(200, json={"status": "success", "message": "Data saved successfully."})


@pytest.fixture
def meta_settings(monkeypatch):
    """Point settings at a fake Meta account with default chunking."""
    monkeypatch.setattr(settings, "meta_access_token", "test-token")
    monkeypatch.setattr(settings, "meta_ad_account_id", "123")
    monkeypatch.setattr(settings, "meta_chunk_days", 30)
    monkeypatch.setattr(settings, "meta_rate_limit_retries", 3)
    return settings


@pytest.fixture
def no_meta(monkeypatch):
    monkeypatch.setattr(settings, "meta_access_token", "")
    monkeypatch.setattr(settings, "meta_ad_account_id", "")
    return settings
