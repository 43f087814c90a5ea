"""ADLENS — API Dependencies."""

from typing import List, Optional

from fastapi import Depends, HTTPException, Query

from adlens.analyzer.filters import PRESETS, RecordFilter, resolve_preset
from adlens.analyzer.pipeline import DashboardPipeline
from adlens.connectors.meta.client import MetaAPIError, MetaClient
from adlens.core.errors import (
    AdlensError,
    ConfigurationError,
    StoreError,
    WorkbookDecodeError,
)
from adlens.core.state_store import SQLStateStore
from adlens.database import engine

_pipeline: Optional[DashboardPipeline] = None


def get_pipeline() -> DashboardPipeline:
    """The process-wide pipeline that owns the working set."""
    global _pipeline
    if _pipeline is None:
        _pipeline = DashboardPipeline(state=SQLStateStore(engine))
    return _pipeline


def get_meta_client() -> MetaClient:
    """A fresh Meta client built from settings."""
    return MetaClient()


def record_filter(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    preset: Optional[str] = Query(
        None, description=f"One of {', '.join(PRESETS)}; overrides start/end"
    ),
    search: Optional[str] = Query(None),
    campaign_types: List[str] = Query([]),
    selected_dates: List[str] = Query([]),
    selected_campaign: Optional[str] = Query(None),
    pipeline: DashboardPipeline = Depends(get_pipeline),
) -> RecordFilter:
    """Build a RecordFilter from query parameters."""
    if preset:
        if preset not in PRESETS:
            raise HTTPException(status_code=400, detail=f"Unknown preset: {preset}")
        window = resolve_preset(pipeline.records, preset)
        if window is not None:
            start_date, end_date = window
    return RecordFilter(
        start_date=start_date,
        end_date=end_date,
        search=search,
        campaign_types=campaign_types,
        selected_dates=selected_dates,
        selected_campaign=selected_campaign,
    )


def to_http_error(e: AdlensError, action: str) -> HTTPException:
    """Map an operation failure onto an HTTP error carrying its message."""
    if isinstance(e, (ConfigurationError, WorkbookDecodeError)):
        status = 400
    elif isinstance(e, (MetaAPIError, StoreError)):
        status = 502
    else:
        status = 500
    return HTTPException(status_code=status, detail=f"{action} failed: {e}")
