"""
buddy_client/services/request_builder.py

Reshapes validated datasets into the prediction request body.
"""

from __future__ import annotations

from typing import Any, Sequence

from buddy_client.domain.datasets import Dataset

PredictionRequest = list[dict[str, Any]]


def build_prediction_request(datasets: Sequence[Dataset]) -> PredictionRequest:
    """
    Build one request element per dataset, preserving submission order.

    ``entry_size`` is present only for datasets that carry one, so the
    service applies its own default weight otherwise.
    """

    request: PredictionRequest = []
    for dataset in datasets:
        element: dict[str, Any] = {
            "name": dataset.name,
            "data": [dict(row) for row in dataset.rows],
        }
        if dataset.entry_size_kb is not None:
            element["entry_size"] = dataset.entry_size_kb
        request.append(element)
    return request
