"""
buddy_client/schemas/prediction.py

Response models for the remote prediction service.

Two deployments answer with different shapes. The shape is decided once,
from the payload keys, by the discriminator below.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Any, ClassVar, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Discriminator, Field, Tag, TypeAdapter


class ResponseVariant(str, Enum):
    PER_DATASET = "per_dataset"
    BATCHED = "batched"


def _round_count(value: Any) -> Any:
    if isinstance(value, float) and math.isfinite(value):
        return round(value)
    return value


# Counters and sizes arrive as JSON numbers; doubles are rounded, not rejected.
Count = Annotated[int, BeforeValidator(_round_count)]


class _ResponseModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class ModelResult(_ResponseModel):
    """
    Error metric and day-by-day predictions of one model.
    """

    mse: float | None = None
    predictions: list[float] = Field(default_factory=list)


class DatasetPrediction(_ResponseModel):
    """
    One dataset's prediction in a per-dataset response.
    """

    dataset: str
    xgb_average: float | None = None
    percentage: float | None = None
    entry_size: Count | None = None
    results: dict[str, ModelResult] = Field(default_factory=dict)


class DatasetResult(_ResponseModel):
    """
    One dataset's prediction inside a batch.
    """

    dataset_name: str
    xgb_average: float | None = None
    entry_size: Count | None = None
    row_count: Count | None = None
    percentage: float | None = None
    weighted_value: float | None = None
    results: dict[str, ModelResult] = Field(default_factory=dict)


class BatchResult(_ResponseModel):
    batch_number: Count
    batch_name: str = ""
    datasets_in_batch: Count = 0
    total_row_count: Count = 0
    dataset_results: list[DatasetResult] = Field(default_factory=list)
    batch_percentages: list[float] | None = None
    buddy_allocation_output: str | None = None


class BuddyOutput(_ResponseModel):
    """
    Raw allocation engine output recorded for one batch.
    """

    batch_number: Count
    batch_name: str = ""
    percentages: list[float] = Field(default_factory=list)
    buddy_output: str | None = None


class PerDatasetResponse(_ResponseModel):
    """
    Flat prediction list with one global allocation report.
    """

    variant: ClassVar[ResponseVariant] = ResponseVariant.PER_DATASET

    predictions: list[DatasetPrediction] = Field(default_factory=list)
    buddy_allocation_output: str | None = None


class BatchedResponse(_ResponseModel):
    """
    Datasets processed in batches, each batch carrying its own report.
    """

    variant: ClassVar[ResponseVariant] = ResponseVariant.BATCHED

    datasets: list[Any] = Field(default_factory=list)
    total_batches: Count = 0
    batch_results: list[BatchResult] = Field(default_factory=list)
    all_buddy_outputs: list[BuddyOutput] = Field(default_factory=list)


def _response_variant(value: Any) -> str | None:
    if isinstance(value, dict):
        if "batch_results" in value:
            return ResponseVariant.BATCHED.value
        return ResponseVariant.PER_DATASET.value
    if isinstance(value, (PerDatasetResponse, BatchedResponse)):
        return value.variant.value
    return None


PredictionResponse = Annotated[
    Union[
        Annotated[PerDatasetResponse, Tag(ResponseVariant.PER_DATASET.value)],
        Annotated[BatchedResponse, Tag(ResponseVariant.BATCHED.value)],
    ],
    Discriminator(_response_variant),
]

_RESPONSE_ADAPTER: TypeAdapter[PerDatasetResponse | BatchedResponse] = TypeAdapter(PredictionResponse)


def parse_prediction_response(payload: Any) -> PerDatasetResponse | BatchedResponse:
    """
    Validate a decoded JSON payload into the matching response model.

    Raises:
        pydantic.ValidationError: payload matches neither shape.
    """

    return _RESPONSE_ADAPTER.validate_python(payload)
