"""
buddy_client/parsers package marker.
"""

from buddy_client.parsers.allocation_report import parse_batch_reports, parse_report
from buddy_client.parsers.csv_tokenizer import CSVTokenizeError, tokenize_csv

__all__ = [
    "CSVTokenizeError",
    "parse_batch_reports",
    "parse_report",
    "tokenize_csv",
]
