"""
buddy_client/connectors package marker.
"""

from buddy_client.connectors.abortable_adapter import AbortableHTTPAdapter, abort_session, abortable_session
from buddy_client.connectors.prediction_connector import (
    CANCELLED_MESSAGE,
    CancellationToken,
    PredictionConnector,
    SubmissionInProgressError,
)

__all__ = [
    "AbortableHTTPAdapter",
    "CANCELLED_MESSAGE",
    "CancellationToken",
    "PredictionConnector",
    "SubmissionInProgressError",
    "abort_session",
    "abortable_session",
]
