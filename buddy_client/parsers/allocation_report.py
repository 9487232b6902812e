"""
buddy_client/parsers/allocation_report.py

Extraction of the performance table embedded in allocation engine output.

The engine prints free text. The reportable part starts at a line reading
exactly ``Results:``; the first following line mentioning ``Block Size`` is
a tab-separated header, and later non-empty lines are tab-separated rows.
Rows whose cell count differs from the header are dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from buddy_client.domain.allocation import AllocationTable, BatchAllocationTable

logger = logging.getLogger(__name__)

RESULTS_MARKER = "Results:"
HEADER_KEYWORD = "Block Size"
CELL_SEPARATOR = "\t"


def parse_report(text: str | None) -> AllocationTable | None:
    """
    Return the report's performance table, or None when there is none.

    A missing marker, a missing header or a header with no qualifying rows
    all yield None; this is a normal state, not an error.
    """

    if not isinstance(text, str) or not text:
        return None

    headers: list[str] | None = None
    rows: list[tuple[str, ...]] = []
    in_results = False
    dropped = 0

    for line in text.split("\n"):
        stripped = line.strip()
        if stripped == RESULTS_MARKER:
            in_results = True
            continue
        if not in_results:
            continue
        if headers is None:
            if HEADER_KEYWORD in line:
                headers = stripped.split(CELL_SEPARATOR)
            continue
        if not stripped:
            continue

        cells = stripped.split(CELL_SEPARATOR)
        if len(cells) == len(headers):
            rows.append(tuple(cells))
        else:
            dropped += 1

    if dropped:
        logger.debug("Dropped %s malformed allocation report row(s)", dropped)

    if headers is None or not rows:
        logger.debug("No allocation performance table found in report in_results=%s", in_results)
        return None

    return AllocationTable(headers=tuple(headers), rows=tuple(rows))


def parse_batch_reports(batches: Iterable[tuple[int, str, str | None]]) -> list[BatchAllocationTable]:
    """
    Parse one report per batch, keeping only batches that yield a table.

    ``batches`` yields ``(batch_number, batch_name, report_text)``. A batch
    whose report is absent or malformed is skipped without affecting others.
    """

    tables: list[BatchAllocationTable] = []
    for batch_number, batch_name, report_text in batches:
        table = parse_report(report_text)
        if table is None:
            logger.debug("Batch has no allocation table batch_number=%s batch_name=%r", batch_number, batch_name)
            continue
        tables.append(
            BatchAllocationTable(
                batch_number=batch_number,
                batch_name=batch_name,
                table=table,
            )
        )
    return tables
