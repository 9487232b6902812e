"""
buddy_client/validators/dataset_validator.py

Upload validation that turns raw files into named datasets.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from buddy_client.domain.datasets import (
    REQUIRED_COLUMNS,
    Dataset,
    FileCountError,
    InvalidEntrySizeError,
    MissingColumnsError,
    MissingFileError,
    NotCSVError,
    ParseFailureError,
    ParsedRow,
    RawUpload,
)
from buddy_client.parsers.csv_tokenizer import CSVTokenizeError, tokenize_csv

logger = logging.getLogger(__name__)

CSV_SUFFIX = ".csv"

Tokenizer = Callable[[bytes], Sequence[ParsedRow]]


class DatasetValidator:
    """
    Validates every upload slot in order and stops at the first failure.
    """

    def __init__(
        self,
        *,
        max_files: int,
        required_columns: tuple[str, ...] = REQUIRED_COLUMNS,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        self._max_files = max(1, max_files)
        self._required_columns = required_columns
        self._tokenizer = tokenizer or tokenize_csv

    @property
    def max_files(self) -> int:
        return self._max_files

    def validate(
        self,
        uploads: Sequence[RawUpload | None],
        *,
        entry_sizes: Sequence[int | None] | None = None,
    ) -> list[Dataset]:
        """
        Return one Dataset per slot, in slot order.

        Every slot is checked for a file before any file is read, so a
        missing slot is reported without tokenizing anything.

        Raises:
            DatasetValidationError: the first problem found, by slot order.
        """

        if not 1 <= len(uploads) <= self._max_files:
            raise FileCountError(requested=len(uploads), maximum=self._max_files)

        present: list[RawUpload] = []
        for slot, upload in enumerate(uploads, start=1):
            if upload is None:
                raise MissingFileError(slot=slot)
            present.append(upload)

        datasets: list[Dataset] = []
        for slot, upload in enumerate(present, start=1):
            entry_size = self._entry_size_for(slot=slot, entry_sizes=entry_sizes)
            datasets.append(self._validate_one(upload=upload, entry_size=entry_size))

        logger.info("Validated %s dataset(s) names=%s", len(datasets), [dataset.name for dataset in datasets])
        return datasets

    def _validate_one(self, *, upload: RawUpload, entry_size: int | None) -> Dataset:
        if not upload.name.lower().endswith(CSV_SUFFIX):
            raise NotCSVError(file_name=upload.name)

        try:
            rows = list(self._tokenizer(upload.content))
        except CSVTokenizeError as exc:
            logger.warning("CSV tokenizing failed file=%r error=%s", upload.name, exc)
            raise ParseFailureError(file_name=upload.name, detail=str(exc)) from exc

        first_row = rows[0] if rows else {}
        missing = tuple(column for column in self._required_columns if column not in first_row)
        if missing:
            raise MissingColumnsError(file_name=upload.name, missing=missing)

        return Dataset(
            name=dataset_name(upload.name),
            rows=tuple(rows),
            entry_size_kb=entry_size,
        )

    @staticmethod
    def _entry_size_for(*, slot: int, entry_sizes: Sequence[int | None] | None) -> int | None:
        if entry_sizes is None or slot > len(entry_sizes):
            return None

        value = entry_sizes[slot - 1]
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidEntrySizeError(slot=slot, value=value)
        return value


def dataset_name(file_name: str) -> str:
    """
    Drop the trailing extension: ``"week.1.csv"`` becomes ``"week.1"``.
    """

    if "." not in file_name:
        return file_name
    return file_name.rsplit(".", 1)[0]
