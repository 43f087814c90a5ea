"""ADLENS — Workbook Adapter.

Decodes an uploaded .xlsx/.xlsm workbook and maps the first sheet's rows
into CampaignRecords. Decoding is all-or-nothing; legacy .xls files are
rejected with a pointer to re-save them.
"""

import io
from typing import List

from openpyxl import load_workbook

from adlens.core.errors import WorkbookDecodeError
from adlens.core.logging import get_logger
from adlens.core.metric_registry import WORKBOOK_FIELDS
from adlens.models.record_models import CampaignRecord
from adlens.parsing.headers import resolve_columns
from adlens.parsing.rows import map_row

logger = get_logger("workbook")

# Compound-file signature of legacy .xls (BIFF) workbooks
LEGACY_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _read_first_sheet(content: bytes) -> list[tuple]:
    """Return every row of the first sheet as a tuple of cell values."""
    if not content:
        raise WorkbookDecodeError("Workbook file is empty")
    if content.startswith(LEGACY_XLS_MAGIC):
        raise WorkbookDecodeError(
            "Legacy .xls workbooks are not supported; save the file as .xlsx"
        )
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise WorkbookDecodeError(f"Could not open workbook: {e}") from e

    try:
        if not wb.sheetnames:
            raise WorkbookDecodeError("Workbook has no sheets")
        ws = wb[wb.sheetnames[0]]
        return list(ws.iter_rows(values_only=True))
    except WorkbookDecodeError:
        raise
    except Exception as e:
        raise WorkbookDecodeError(f"Could not read first sheet: {e}") from e
    finally:
        wb.close()


def read_workbook(content: bytes) -> List[CampaignRecord]:
    """Decode a workbook and map its first sheet into records.

    Raises WorkbookDecodeError when the file cannot be decoded; no partial
    result is ever returned. Unusable rows are skipped.
    """
    rows = _read_first_sheet(content)
    if len(rows) < 2:
        logger.info("Workbook has no data rows")
        return []

    columns = resolve_columns(rows[0], WORKBOOK_FIELDS)
    records: List[CampaignRecord] = []
    for i, row in enumerate(rows[1:], start=1):
        record = map_row(list(row), columns, row_index=i)
        if record is not None:
            records.append(record)

    logger.info(
        f"Parsed {len(records)} records from workbook ({len(rows) - 1} rows)",
        extra={"rows": len(records)},
    )
    return records
