"""
buddy_client/domain package marker.
"""

from buddy_client.domain.allocation import AllocationTable, BatchAllocationTable
from buddy_client.domain.datasets import (
    DAY_COLUMN,
    ENTRIES_COLUMN,
    REQUIRED_COLUMNS,
    Dataset,
    DatasetValidationError,
    FileCountError,
    InvalidEntrySizeError,
    MissingColumnsError,
    MissingFileError,
    NotCSVError,
    ParseFailureError,
    ParsedRow,
    RawUpload,
)
from buddy_client.domain.outcomes import HttpError, Outcome, Success, TimedOut, TransportError

__all__ = [
    "AllocationTable",
    "BatchAllocationTable",
    "DAY_COLUMN",
    "Dataset",
    "DatasetValidationError",
    "ENTRIES_COLUMN",
    "FileCountError",
    "HttpError",
    "InvalidEntrySizeError",
    "MissingColumnsError",
    "MissingFileError",
    "NotCSVError",
    "Outcome",
    "ParseFailureError",
    "ParsedRow",
    "REQUIRED_COLUMNS",
    "RawUpload",
    "Success",
    "TimedOut",
    "TransportError",
]
