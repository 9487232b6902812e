"""
tests/test_request_builder.py

Pytest unit tests for build_prediction_request.
"""

from __future__ import annotations

import json

from buddy_client.domain.datasets import Dataset
from buddy_client.services.request_builder import build_prediction_request


def _dataset(name: str, days: int, entry_size_kb: int | None = None) -> Dataset:
    rows = tuple({"Day No.": str(day), "Number of entries": str(day * 3)} for day in range(1, days + 1))
    return Dataset(name=name, rows=rows, entry_size_kb=entry_size_kb)


class TestBuildPredictionRequest:
    def test_one_item_per_dataset_in_order(self) -> None:
        request = build_prediction_request([_dataset("b", 2), _dataset("a", 1), _dataset("c", 3)])

        assert [item["name"] for item in request] == ["b", "a", "c"]
        assert [len(item["data"]) for item in request] == [2, 1, 3]

    def test_rows_are_passed_through_as_dicts(self) -> None:
        dataset = _dataset("usage", 2)

        request = build_prediction_request([dataset])

        assert request[0]["data"] == [
            {"Day No.": "1", "Number of entries": "3"},
            {"Day No.": "2", "Number of entries": "6"},
        ]
        assert all(type(row) is dict for row in request[0]["data"])

    def test_entry_size_only_when_supplied(self) -> None:
        request = build_prediction_request([_dataset("sized", 1, entry_size_kb=8), _dataset("plain", 1)])

        assert request[0]["entry_size"] == 8
        assert "entry_size" not in request[1]

    def test_request_is_json_serializable(self) -> None:
        request = build_prediction_request([_dataset("usage", 2, entry_size_kb=4)])
        decoded = json.loads(json.dumps(request))
        assert decoded == request

    def test_empty_input(self) -> None:
        assert build_prediction_request([]) == []
