"""ADLENS — Dashboard Pipeline Orchestrator.

Owns the working record set and runs the data flows:
  store → parse → (Meta enrich) → working set
  workbook → import merge → (Meta enrich) → working set → store
  Meta → enrichment merge → working set

The working set is only ever replaced by reference once a flow has
finished; a failing flow leaves it untouched.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel

from adlens.analyzer.aggregation_engine import (
    aggregate_by_campaign,
    aggregate_by_date,
    sort_rows,
    summarize,
)
from adlens.analyzer.filters import RecordFilter, apply_filter, date_span, default_window
from adlens.analyzer.merge_engine import merge_enrichment, merge_import, sort_by_date
from adlens.config import settings
from adlens.connectors.meta.client import MetaClient
from adlens.connectors.meta.endpoints import MetaEndpoints
from adlens.connectors.meta.transformer import transform_insights
from adlens.connectors.store.adapter import parse_store_grid, records_to_grid
from adlens.connectors.store.client import StoreClient
from adlens.connectors.workbook import read_workbook
from adlens.core.errors import AdlensError, StoreError
from adlens.core.state_store import MemoryStateStore, StateStore
from adlens.models.record_models import (
    AggregateRow,
    CampaignRecord,
    DashboardSummary,
    WorkingSetInfo,
)
from adlens.core.logging import get_logger

logger = get_logger("analyzer.pipeline")


class PipelineReport(BaseModel):
    """Outcome of one pipeline flow."""

    operation: str
    record_count: int = 0
    imported_rows: int = 0
    meta_rows: int = 0
    date_start: str = ""
    date_end: str = ""
    meta_error: Optional[str] = None
    """Set when the follow-up Meta sync of a reload/import failed."""
    saved: bool = False
    save_error: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DashboardPipeline:
    """Working-set owner for one dashboard process."""

    def __init__(
        self,
        store_factory: Callable[[], StoreClient] = StoreClient,
        meta_factory: Callable[[], MetaClient] = MetaClient,
        state: StateStore | None = None,
    ):
        self.store_factory = store_factory
        self.meta_factory = meta_factory
        self.state = state or MemoryStateStore()
        self._records: List[CampaignRecord] = []
        self._loaded = False
        # Serializes every flow that reads the working set and replaces it
        self._lock = asyncio.Lock()

    @property
    def records(self) -> List[CampaignRecord]:
        return self._records

    @property
    def loaded(self) -> bool:
        """Whether the working set reflects the store (or was set explicitly)."""
        return self._loaded

    def replace_records(self, records: Sequence[CampaignRecord]) -> None:
        """Swap in a new working set."""
        self._records = sort_by_date(records)
        self._loaded = True

    # ── Meta enrichment ──

    def meta_enabled(self) -> bool:
        client = self.meta_factory()
        return bool(client.access_token and client.ad_account_id)

    async def _fetch_meta(
        self, date_start: Optional[str], date_stop: Optional[str]
    ) -> List[CampaignRecord]:
        client = self.meta_factory()
        try:
            raw = await MetaEndpoints(client).fetch_campaign_insights(
                date_start, date_stop
            )
        finally:
            await client.close()
        return transform_insights(raw)

    async def _enrich(
        self, records: List[CampaignRecord], report: PipelineReport
    ) -> List[CampaignRecord]:
        """Best-effort Meta overlay used after a reload or import."""
        span = date_span(records)
        if span is None or not self.meta_enabled():
            return records
        try:
            meta_records = await self._fetch_meta(*span)
        except AdlensError as e:
            logger.error(f"Meta sync after {report.operation} failed: {e}")
            report.meta_error = str(e)
            return records
        report.meta_rows = len(meta_records)
        self.state.set("last_sync_at", _now())
        return merge_enrichment(records, meta_records)

    async def sync_meta(
        self,
        date_start: Optional[str] = None,
        date_stop: Optional[str] = None,
    ) -> PipelineReport:
        """Overlay Meta insights onto the working set.

        Without a range the working set's own date span is used. An empty
        working set has nothing to enrich, so no request is made. Errors
        propagate and leave the working set as it was.
        """
        async with self._lock:
            report = PipelineReport(operation="sync_meta")
            current = self._records
            if not current:
                logger.info("Meta sync skipped: working set is empty")
                return report
            if not (date_start and date_stop):
                date_start, date_stop = date_span(current)

            meta_records = await self._fetch_meta(date_start, date_stop)
            merged = merge_enrichment(current, meta_records)
            self.replace_records(merged)

            self.state.set("last_sync_at", _now())
            report.meta_rows = len(meta_records)
            report.date_start = date_start
            report.date_end = date_stop
            report.record_count = len(merged)
            logger.info(
                f"Synced {len(meta_records)} Meta rows onto {len(merged)} records",
                extra={"rows": len(meta_records)},
            )
            return report

    # ── Store flows ──

    async def reload(self) -> PipelineReport:
        """Replace the working set with the store's dataset, then enrich."""
        async with self._lock:
            return await self._reload()

    async def _reload(self) -> PipelineReport:
        report = PipelineReport(operation="reload")
        store = self.store_factory()
        try:
            grid = await store.fetch_grid()
        finally:
            await store.close()

        records = parse_store_grid(grid)
        records = await self._enrich(records, report)
        self.replace_records(records)

        self.state.set("last_reload_at", _now())
        return self._finish(report)

    async def save(self) -> PipelineReport:
        """Write the working set to the store, replacing the sheet."""
        async with self._lock:
            report = PipelineReport(operation="save")
            await self._save(self._records)
            report.saved = True
            return self._finish(report)

    async def _save(self, records: Sequence[CampaignRecord]) -> None:
        if not records:
            raise StoreError("No data to save")
        store = self.store_factory()
        try:
            await store.replace_sheet(records_to_grid(records))
        finally:
            await store.close()
        self.state.set("last_save_at", _now())

    async def refresh(self) -> PipelineReport:
        """Reload from the store and write the enriched result back.

        Runs as one step so no other flow can land between the reload and
        the save. The save is skipped when the Meta sync failed or the
        store holds no rows.
        """
        async with self._lock:
            report = await self._reload()
            if report.meta_error:
                logger.warning(f"Skipping save, Meta sync failed: {report.meta_error}")
                return report
            if self._records:
                await self._save(self._records)
                report.saved = True
            return report

    async def import_workbook(self, content: bytes) -> PipelineReport:
        """Merge a workbook upload into the working set, enrich and save.

        A workbook that cannot be decoded fails the whole import. A working
        set that was never loaded is reloaded from the store first, so the
        save that follows cannot replace stored history with the upload
        alone. Once the merge has landed, a failing save is reported rather
        than raised.
        """
        incoming = read_workbook(content)

        async with self._lock:
            if not self._loaded:
                logger.info("Working set not loaded yet; reloading before import")
                await self._reload()

            report = PipelineReport(operation="import", imported_rows=len(incoming))
            merged = merge_import(self._records, incoming)
            merged = await self._enrich(merged, report)
            self.replace_records(merged)
            self.state.set("last_import_rows", len(incoming))

            try:
                await self._save(merged)
                report.saved = True
            except AdlensError as e:
                logger.error(f"Saving after import failed: {e}")
                report.save_error = str(e)
            return self._finish(report)

    def _finish(self, report: PipelineReport) -> PipelineReport:
        report.record_count = len(self._records)
        span = date_span(self._records)
        if span is not None:
            report.date_start, report.date_end = span
        logger.info(
            f"{report.operation} complete: {report.record_count} records",
            extra={"rows": report.record_count},
        )
        return report

    # ── Views ──

    def info(self) -> WorkingSetInfo:
        records = self._records
        campaigns = sorted({r.campaign_name for r in records})
        span = date_span(records) or ("", "")
        window = default_window(records, settings.default_window_days) or ("", "")
        return WorkingSetInfo(
            record_count=len(records),
            campaign_count=len(campaigns),
            date_start=span[0],
            date_end=span[1],
            window_start=window[0],
            window_end=window[1],
            campaigns=campaigns,
        )

    def filtered(self, f: RecordFilter) -> List[CampaignRecord]:
        return apply_filter(self._records, f)

    def campaigns(
        self, f: RecordFilter, sort_field: str = "spent", order: str = "desc"
    ) -> List[AggregateRow]:
        return sort_rows(aggregate_by_campaign(self.filtered(f)), sort_field, order)

    def timeseries(self, f: RecordFilter) -> List[AggregateRow]:
        return aggregate_by_date(apply_filter(self._records, f.without_selection()))

    def summary(self, f: RecordFilter) -> DashboardSummary:
        return summarize(self.filtered(f))
