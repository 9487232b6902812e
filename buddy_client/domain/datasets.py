"""
buddy_client/domain/datasets.py

Domain models and errors for dataset ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

DAY_COLUMN = "Day No."
ENTRIES_COLUMN = "Number of entries"
REQUIRED_COLUMNS: tuple[str, ...] = (DAY_COLUMN, ENTRIES_COLUMN)

ParsedRow = Mapping[str, str]


@dataclass(frozen=True)
class RawUpload:
    """
    One uploaded file as received from the form.
    """

    name: str
    content: bytes


@dataclass(frozen=True)
class Dataset:
    """
    Validated dataset ready to be sent to the prediction service.

    Rows keep their file order, which the service reads as day order.
    """

    name: str
    rows: tuple[ParsedRow, ...]
    entry_size_kb: int | None = None


class DatasetValidationError(ValueError):
    """
    Base class for user-correctable ingestion failures.
    """


class FileCountError(DatasetValidationError):
    """
    Raised when the number of requested slots lies outside 1..K.
    """

    def __init__(self, *, requested: int, maximum: int) -> None:
        self.requested = requested
        self.maximum = maximum
        super().__init__(f"Between 1 and {maximum} CSV files can be submitted; {requested} were requested.")


class MissingFileError(DatasetValidationError):
    """
    Raised when an upload slot has no file. ``slot`` is 1-based.
    """

    def __init__(self, *, slot: int) -> None:
        self.slot = slot
        super().__init__(f"Please upload all required CSV files: Dataset {slot} is missing.")


class NotCSVError(DatasetValidationError):
    def __init__(self, *, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"File {file_name} is not a CSV file.")


class ParseFailureError(DatasetValidationError):
    def __init__(self, *, file_name: str, detail: str) -> None:
        self.file_name = file_name
        self.detail = detail
        super().__init__(f"Error parsing file {file_name}: {detail}")


class MissingColumnsError(DatasetValidationError):
    def __init__(self, *, file_name: str, missing: tuple[str, ...]) -> None:
        self.file_name = file_name
        self.missing = missing
        names = " and ".join(f"'{name}'" for name in missing)
        super().__init__(f"File {file_name} is missing required columns {names}.")


class InvalidEntrySizeError(DatasetValidationError):
    """
    Raised when a supplied entry size is not a positive integer.
    """

    def __init__(self, *, slot: int, value: object) -> None:
        self.slot = slot
        self.value = value
        super().__init__(f"Entry size for Dataset {slot} must be a positive whole number of KB, got {value!r}.")
