"""
buddy_client/services/submission_service.py

Drives one user submission from uploaded files to display-ready state.

    Idle -> Validating -> Rejected
                       -> Sending -> Succeeded
                                  -> Failed

Validation failures stop the run before any network call. Call failures
stop it before any report parsing. A missing or malformed allocation report
never fails the run; that batch simply has no table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Sequence

from pydantic import ValidationError

from buddy_client.config import ClientSettings, get_client_settings
from buddy_client.connectors.prediction_connector import CancellationToken, PredictionConnector
from buddy_client.domain.allocation import BatchAllocationTable
from buddy_client.domain.datasets import DatasetValidationError, RawUpload
from buddy_client.domain.outcomes import Outcome, Success
from buddy_client.schemas.prediction import BatchedResponse, PerDatasetResponse, parse_prediction_response
from buddy_client.services.projection import allocation_tables
from buddy_client.services.request_builder import build_prediction_request
from buddy_client.validators.dataset_validator import DatasetValidator

logger = logging.getLogger(__name__)


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REJECTED = "rejected"
    SENDING = "sending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: dict[SubmissionPhase, frozenset[SubmissionPhase]] = {
    SubmissionPhase.IDLE: frozenset({SubmissionPhase.VALIDATING}),
    SubmissionPhase.VALIDATING: frozenset({SubmissionPhase.REJECTED, SubmissionPhase.SENDING}),
    SubmissionPhase.SENDING: frozenset({SubmissionPhase.SUCCEEDED, SubmissionPhase.FAILED}),
    SubmissionPhase.REJECTED: frozenset(),
    SubmissionPhase.SUCCEEDED: frozenset(),
    SubmissionPhase.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """
    Raised when a submission state change skips or reverses a phase.
    """


@dataclass(frozen=True)
class SubmissionState:
    """
    Immutable snapshot of one submission.
    """

    phase: SubmissionPhase = SubmissionPhase.IDLE
    reason: str | None = None
    dataset_names: tuple[str, ...] = ()
    outcome: Outcome | None = None
    response: PerDatasetResponse | BatchedResponse | None = None
    raw_payload: Any = None
    allocation_tables: tuple[BatchAllocationTable, ...] = field(default_factory=tuple)

    @property
    def is_in_progress(self) -> bool:
        return self.phase in {SubmissionPhase.VALIDATING, SubmissionPhase.SENDING}

    def advance(self, phase: SubmissionPhase, **changes: Any) -> "SubmissionState":
        """
        Return the next state. Raises InvalidTransitionError on illegal moves.
        """

        if phase not in _ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidTransitionError(f"Cannot move submission from {self.phase.value} to {phase.value}.")
        return replace(self, phase=phase, **changes)


TransitionCallback = Callable[[SubmissionState], None]


class SubmissionService:
    """
    Coordinates validation, request building, the remote call and parsing.
    """

    def __init__(
        self,
        *,
        validator: DatasetValidator,
        connector: PredictionConnector,
        collect_entry_size: bool = True,
    ) -> None:
        self._validator = validator
        self._connector = connector
        self._collect_entry_size = collect_entry_size

    @property
    def max_files(self) -> int:
        return self._validator.max_files

    @property
    def collect_entry_size(self) -> bool:
        return self._collect_entry_size

    @property
    def is_busy(self) -> bool:
        return self._connector.is_busy

    def run(
        self,
        uploads: Sequence[RawUpload | None],
        *,
        entry_sizes: Sequence[int | None] | None = None,
        cancel_token: CancellationToken | None = None,
        on_transition: TransitionCallback | None = None,
    ) -> SubmissionState:
        """
        Run one submission from a fresh Idle state and return its final state.

        ``on_transition`` is called with every intermediate and final state.
        """

        def _move(current: SubmissionState, phase: SubmissionPhase, **changes: Any) -> SubmissionState:
            updated = current.advance(phase, **changes)
            logger.info("Submission phase=%s reason=%s", updated.phase.value, updated.reason)
            if on_transition is not None:
                on_transition(updated)
            return updated

        state = _move(SubmissionState(), SubmissionPhase.VALIDATING)

        try:
            datasets = self._validator.validate(
                uploads,
                entry_sizes=entry_sizes if self._collect_entry_size else None,
            )
        except DatasetValidationError as exc:
            logger.warning("Submission rejected error=%s", exc)
            return _move(state, SubmissionPhase.REJECTED, reason=str(exc))

        request = build_prediction_request(datasets)
        state = _move(
            state,
            SubmissionPhase.SENDING,
            dataset_names=tuple(dataset.name for dataset in datasets),
        )

        outcome = self._connector.submit(request, cancel_token=cancel_token)
        if not isinstance(outcome, Success):
            return _move(state, SubmissionPhase.FAILED, reason=outcome.message, outcome=outcome)

        try:
            response = parse_prediction_response(outcome.payload)
        except ValidationError as exc:
            logger.error("Prediction response did not match a known shape errors=%s", exc.error_count())
            return _move(
                state,
                SubmissionPhase.FAILED,
                reason=f"The prediction service returned an unexpected response ({exc.error_count()} problem(s)): "
                f"{_first_error(exc)}",
                outcome=outcome,
                raw_payload=outcome.payload,
            )

        tables = allocation_tables(response)
        logger.info(
            "Submission succeeded variant=%s allocation_tables=%s",
            response.variant.value,
            len(tables),
        )
        return _move(
            state,
            SubmissionPhase.SUCCEEDED,
            outcome=outcome,
            response=response,
            raw_payload=outcome.payload,
            allocation_tables=tuple(tables),
        )


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "response"
    return f"{location}: {first.get('msg', 'invalid value')}"


def build_submission_service(settings: ClientSettings) -> SubmissionService:
    """
    Build a submission service with its own connector.
    """

    return SubmissionService(
        validator=DatasetValidator(max_files=settings.ingestion.max_files),
        connector=PredictionConnector(settings=settings.service),
        collect_entry_size=settings.ingestion.collect_entry_size,
    )


@lru_cache(maxsize=1)
def get_submission_service() -> SubmissionService:
    """
    Build and cache the submission service with env-driven settings.
    """

    return build_submission_service(get_client_settings())
