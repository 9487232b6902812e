"""
buddy_client/services package marker.
"""

from buddy_client.services.projection import (
    BatchOverview,
    DatasetDetail,
    DatasetSummary,
    GroupSummary,
    ModelDetail,
    ResponseOverview,
    allocation_tables,
    dataset_details,
    flatten_batches,
    group_summaries,
    is_balanced,
    response_overview,
)
from buddy_client.services.request_builder import PredictionRequest, build_prediction_request
from buddy_client.services.submission_service import (
    InvalidTransitionError,
    SubmissionPhase,
    SubmissionService,
    SubmissionState,
    build_submission_service,
    get_submission_service,
)

__all__ = [
    "BatchOverview",
    "DatasetDetail",
    "DatasetSummary",
    "GroupSummary",
    "InvalidTransitionError",
    "ModelDetail",
    "PredictionRequest",
    "ResponseOverview",
    "SubmissionPhase",
    "SubmissionService",
    "SubmissionState",
    "allocation_tables",
    "build_prediction_request",
    "build_submission_service",
    "dataset_details",
    "flatten_batches",
    "get_submission_service",
    "group_summaries",
    "is_balanced",
    "response_overview",
]
