"""
buddy_client/services/projection.py

Read-only display views derived from a validated prediction response.

Both response shapes are first normalized into allocation units (one per
batch; the per-dataset shape is a single unit). Every view below is
computed from those units, so no view depends on the response shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from buddy_client.domain.allocation import BatchAllocationTable
from buddy_client.parsers.allocation_report import parse_batch_reports
from buddy_client.schemas.prediction import (
    BatchedResponse,
    DatasetPrediction,
    DatasetResult,
    ModelResult,
    PerDatasetResponse,
)

BALANCE_TOLERANCE = 0.01
SUMMARY_MODEL = "XGBoost"
SINGLE_UNIT_NAME = "All datasets"


@dataclass(frozen=True)
class DatasetSummary:
    name: str
    xgb_average: float | None
    percentage: float | None
    entry_size: int | None = None
    row_count: int | None = None
    weighted_value: float | None = None
    xgb_mse: float | None = None


@dataclass(frozen=True)
class GroupSummary:
    """
    Datasets sharing one allocation; their percentages should total 100.
    """

    batch_number: int
    identifier: str
    datasets: tuple[DatasetSummary, ...]
    total_row_count: int | None
    percentage_total: float | None

    @property
    def element_count(self) -> int:
        return len(self.datasets)

    @property
    def has_percentages(self) -> bool:
        return self.percentage_total is not None

    @property
    def is_balanced(self) -> bool:
        """False when the group carries no percentages at all."""
        return self.percentage_total is not None and is_balanced(self.percentage_total)


@dataclass(frozen=True)
class BatchOverview:
    batch_number: int
    batch_name: str
    datasets_in_batch: int
    total_row_count: int | None
    result_count: int
    percentages: tuple[float, ...]
    has_allocation_output: bool


@dataclass(frozen=True)
class ModelDetail:
    model_name: str
    mse: float | None
    predictions: tuple[float, ...]


@dataclass(frozen=True)
class DatasetDetail:
    batch_number: int
    batch_name: str
    dataset: DatasetSummary
    models: tuple[ModelDetail, ...]


@dataclass(frozen=True)
class ResponseOverview:
    dataset_count: int
    batch_count: int
    result_count: int
    allocation_output_count: int


@dataclass(frozen=True)
class _UnitEntry:
    summary: DatasetSummary
    results: Mapping[str, ModelResult]


@dataclass(frozen=True)
class _Unit:
    batch_number: int
    batch_name: str
    entries: tuple[_UnitEntry, ...]
    datasets_in_batch: int
    total_row_count: int | None
    percentages: tuple[float, ...]
    report_text: str | None


def is_balanced(percentage_total: float) -> bool:
    return abs(percentage_total - 100.0) < BALANCE_TOLERANCE


def group_summaries(response: PerDatasetResponse | BatchedResponse) -> list[GroupSummary]:
    """
    One summary per allocation group: the whole response, or each batch.

    ``percentage_total`` sums dataset percentages; when no dataset carries
    one it falls back to the batch's own percentage list. It is None when
    neither carries any, which means missing data rather than drift.
    """

    summaries: list[GroupSummary] = []
    for unit in _units(response):
        dataset_percentages = [entry.summary.percentage for entry in unit.entries if entry.summary.percentage is not None]
        if dataset_percentages:
            total: float | None = sum(dataset_percentages)
        elif unit.percentages:
            total = sum(unit.percentages)
        else:
            total = None
        summaries.append(
            GroupSummary(
                batch_number=unit.batch_number,
                identifier=unit.batch_name,
                datasets=tuple(entry.summary for entry in unit.entries),
                total_row_count=unit.total_row_count,
                percentage_total=total,
            )
        )
    return summaries


def flatten_batches(response: PerDatasetResponse | BatchedResponse) -> list[BatchOverview]:
    """
    Every allocation unit across the response, in response order.
    """

    return [
        BatchOverview(
            batch_number=unit.batch_number,
            batch_name=unit.batch_name,
            datasets_in_batch=unit.datasets_in_batch,
            total_row_count=unit.total_row_count,
            result_count=len(unit.entries),
            percentages=unit.percentages,
            has_allocation_output=bool(unit.report_text),
        )
        for unit in _units(response)
    ]


def dataset_details(response: PerDatasetResponse | BatchedResponse) -> list[DatasetDetail]:
    """
    Per unit, per dataset, per model: the error metric and predictions.
    """

    details: list[DatasetDetail] = []
    for unit in _units(response):
        for entry in unit.entries:
            details.append(
                DatasetDetail(
                    batch_number=unit.batch_number,
                    batch_name=unit.batch_name,
                    dataset=entry.summary,
                    models=tuple(
                        ModelDetail(
                            model_name=model_name,
                            mse=result.mse,
                            predictions=tuple(result.predictions),
                        )
                        for model_name, result in entry.results.items()
                    ),
                )
            )
    return details


def allocation_tables(response: PerDatasetResponse | BatchedResponse) -> list[BatchAllocationTable]:
    """
    Parse every report field in the response, one table per unit at most.
    """

    return parse_batch_reports((unit.batch_number, unit.batch_name, unit.report_text) for unit in _units(response))


def response_overview(response: PerDatasetResponse | BatchedResponse) -> ResponseOverview:
    units = _units(response)
    result_count = sum(len(unit.entries) for unit in units)

    if isinstance(response, BatchedResponse):
        return ResponseOverview(
            dataset_count=len(response.datasets),
            batch_count=response.total_batches or len(units),
            result_count=result_count,
            allocation_output_count=len(response.all_buddy_outputs),
        )

    return ResponseOverview(
        dataset_count=result_count,
        batch_count=len(units),
        result_count=result_count,
        allocation_output_count=sum(1 for unit in units if unit.report_text),
    )


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _units(response: PerDatasetResponse | BatchedResponse) -> list[_Unit]:
    if isinstance(response, BatchedResponse):
        return [
            _Unit(
                batch_number=batch.batch_number,
                batch_name=batch.batch_name or f"Batch {batch.batch_number}",
                entries=tuple(_entry_from_result(result) for result in batch.dataset_results),
                datasets_in_batch=batch.datasets_in_batch,
                total_row_count=batch.total_row_count,
                percentages=tuple(batch.batch_percentages or ()),
                report_text=batch.buddy_allocation_output,
            )
            for batch in response.batch_results
        ]

    entries = tuple(_entry_from_prediction(prediction) for prediction in response.predictions)
    return [
        _Unit(
            batch_number=1,
            batch_name=SINGLE_UNIT_NAME,
            entries=entries,
            datasets_in_batch=len(entries),
            total_row_count=None,
            percentages=tuple(entry.summary.percentage for entry in entries if entry.summary.percentage is not None),
            report_text=response.buddy_allocation_output,
        )
    ]


def _entry_from_prediction(prediction: DatasetPrediction) -> _UnitEntry:
    return _UnitEntry(
        summary=DatasetSummary(
            name=prediction.dataset,
            xgb_average=prediction.xgb_average,
            percentage=prediction.percentage,
            entry_size=prediction.entry_size,
            xgb_mse=_summary_mse(prediction.results),
        ),
        results=prediction.results,
    )


def _entry_from_result(result: DatasetResult) -> _UnitEntry:
    return _UnitEntry(
        summary=DatasetSummary(
            name=result.dataset_name,
            xgb_average=result.xgb_average,
            percentage=result.percentage,
            entry_size=result.entry_size,
            row_count=result.row_count,
            weighted_value=result.weighted_value,
            xgb_mse=_summary_mse(result.results),
        ),
        results=result.results,
    )


def _summary_mse(results: Mapping[str, ModelResult]) -> float | None:
    model = results.get(SUMMARY_MODEL)
    return model.mse if model is not None else None
