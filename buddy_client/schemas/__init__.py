"""
buddy_client/schemas package marker.
"""

from buddy_client.schemas.prediction import (
    BatchedResponse,
    BatchResult,
    BuddyOutput,
    DatasetPrediction,
    DatasetResult,
    ModelResult,
    PerDatasetResponse,
    PredictionResponse,
    ResponseVariant,
    parse_prediction_response,
)

__all__ = [
    "BatchResult",
    "BatchedResponse",
    "BuddyOutput",
    "DatasetPrediction",
    "DatasetResult",
    "ModelResult",
    "PerDatasetResponse",
    "PredictionResponse",
    "ResponseVariant",
    "parse_prediction_response",
]
