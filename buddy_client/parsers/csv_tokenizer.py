"""
buddy_client/parsers/csv_tokenizer.py

Header-driven CSV tokenizing for uploaded datasets.
"""

from __future__ import annotations

import csv
import io


class CSVTokenizeError(ValueError):
    """
    Raised when uploaded bytes cannot be read as CSV.
    """


def tokenize_csv(content: bytes) -> list[dict[str, str]]:
    """
    Split CSV bytes into one mapping per non-empty line, keyed by header.

    Cells missing from a short line are left out of its mapping rather than
    filled with a placeholder, and cells beyond the header are dropped.
    """

    text_stream: io.TextIOWrapper | None = None
    try:
        text_stream = io.TextIOWrapper(io.BytesIO(content), encoding="utf-8-sig", newline="")
        reader = csv.DictReader(text_stream)
        return [
            {key: value for key, value in raw_row.items() if key is not None and value is not None}
            for raw_row in reader
        ]
    except UnicodeDecodeError as exc:
        raise CSVTokenizeError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise CSVTokenizeError(f"Invalid CSV format: {exc}") from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                pass
