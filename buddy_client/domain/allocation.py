"""
buddy_client/domain/allocation.py

Tabular view of an allocation performance report.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class AllocationTable:
    """
    Rectangular table: every row has exactly ``len(headers)`` cells.
    """

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]

    def __post_init__(self) -> None:
        width = len(self.headers)
        for row in self.rows:
            if len(row) != width:
                raise ValueError(f"Row {row!r} has {len(row)} cells; expected {width}.")

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.rows), columns=list(self.headers))


@dataclass(frozen=True)
class BatchAllocationTable:
    """
    Allocation table tagged with the batch whose report produced it.
    """

    batch_number: int
    batch_name: str
    table: AllocationTable
