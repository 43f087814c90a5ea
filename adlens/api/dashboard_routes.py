"""ADLENS — Dashboard Data Routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, field_validator

from adlens.analyzer.filters import RecordFilter
from adlens.analyzer.pipeline import DashboardPipeline, PipelineReport
from adlens.api.deps import get_pipeline, record_filter, to_http_error
from adlens.core.errors import AdlensError
from adlens.models.record_models import (
    AggregateRow,
    CampaignRecord,
    DashboardSummary,
    WorkingSetInfo,
)
from adlens.core.logging import get_logger

logger = get_logger("api.dashboard")

router = APIRouter(prefix="/data", tags=["Dashboard"])


# ── Request Models ──


class SyncMetaRequest(BaseModel):
    """Request body for POST /data/sync-meta."""

    start_date: Optional[str] = None
    """YYYY-MM-DD. With end_date, limits the sync; otherwise the data's own span is used."""
    end_date: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _check_date(cls, v: Optional[str]) -> Optional[str]:
        if v:
            datetime.strptime(v, "%Y-%m-%d")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [{"start_date": "2024-01-01", "end_date": "2024-03-05"}]
        }
    }


# ── Flows ──


@router.post("/reload", response_model=PipelineReport)
async def reload_data(pipeline: DashboardPipeline = Depends(get_pipeline)):
    """Reload the working set from the spreadsheet store and enrich it."""
    try:
        return await pipeline.reload()
    except AdlensError as e:
        logger.error(f"Reload failed: {e}")
        raise to_http_error(e, "Reload")


@router.post("/import", response_model=PipelineReport)
async def import_workbook(
    file: UploadFile = File(..., description=".xlsx workbook"),
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    """Import a workbook: merge (existing rows win), enrich, save."""
    content = await file.read()
    try:
        return await pipeline.import_workbook(content)
    except AdlensError as e:
        logger.error(f"Import of {file.filename} failed: {e}")
        raise to_http_error(e, "Import")


@router.post("/sync-meta", response_model=PipelineReport)
async def sync_meta(
    request: SyncMetaRequest,
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    """Overlay Meta insights onto the records already in the working set."""
    try:
        return await pipeline.sync_meta(request.start_date, request.end_date)
    except AdlensError as e:
        logger.error(f"Meta sync failed: {e}")
        raise to_http_error(e, "Meta sync")


@router.post("/save", response_model=PipelineReport)
async def save_data(pipeline: DashboardPipeline = Depends(get_pipeline)):
    """Replace the store's dataset sheet with the working set."""
    try:
        return await pipeline.save()
    except AdlensError as e:
        logger.error(f"Save failed: {e}")
        raise to_http_error(e, "Save")


# ── Views ──


@router.get("/info", response_model=WorkingSetInfo)
async def working_set_info(pipeline: DashboardPipeline = Depends(get_pipeline)):
    return pipeline.info()


@router.get("/records", response_model=List[CampaignRecord])
async def list_records(
    f: RecordFilter = Depends(record_filter),
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    """Filtered per-day records, ascending by date."""
    return pipeline.filtered(f)


@router.get("/campaigns", response_model=List[AggregateRow])
async def list_campaigns(
    f: RecordFilter = Depends(record_filter),
    sort_field: str = Query("spent"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    """Per-campaign totals with ratios recomputed from the sums."""
    if sort_field not in AggregateRow.model_fields:
        raise HTTPException(status_code=400, detail=f"Unknown sort field: {sort_field}")
    return pipeline.campaigns(f, sort_field, order)


@router.get("/timeseries", response_model=List[AggregateRow])
async def timeseries(
    f: RecordFilter = Depends(record_filter),
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    """Per-day totals for charts. Date/campaign selections are ignored."""
    return pipeline.timeseries(f)


@router.get("/summary", response_model=DashboardSummary)
async def summary(
    f: RecordFilter = Depends(record_filter),
    pipeline: DashboardPipeline = Depends(get_pipeline),
):
    return pipeline.summary(f)
