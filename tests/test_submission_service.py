"""
tests/test_submission_service.py

Pytest unit tests for SubmissionService.

Coverage
--------
- End-to-end success with one allocation table per dataset
- Validation rejection never reaches the network
- Call failures and unexpected response shapes
- Phase transitions and the state machine guard
"""

from __future__ import annotations

import pytest
import requests

from buddy_client.config import (
    CLASSIC_VARIANT,
    ClientSettings,
    IngestionSettings,
    PredictionServiceSettings,
)
from buddy_client.domain.datasets import RawUpload
from buddy_client.domain.outcomes import HttpError, TimedOut
from buddy_client.schemas.prediction import BatchedResponse
from buddy_client.services.submission_service import (
    InvalidTransitionError,
    SubmissionPhase,
    SubmissionService,
    SubmissionState,
    build_submission_service,
)
from buddy_client.validators.dataset_validator import DatasetValidator


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_service(make_connector):
    def _make(*, collect_entry_size: bool = True, **session_kwargs):
        connector, sessions = make_connector(**session_kwargs)
        service = SubmissionService(
            validator=DatasetValidator(max_files=5),
            connector=connector,
            collect_entry_size=collect_entry_size,
        )
        return service, sessions

    return _make


@pytest.fixture()
def two_uploads(usage_csv) -> list[RawUpload]:
    return [
        RawUpload(name="server-a.csv", content=usage_csv(3)),
        RawUpload(name="server-b.csv", content=usage_csv(2)),
    ]


# ---------------------------------------------------------------------------
# Success
# ---------------------------------------------------------------------------


class TestSuccessfulSubmission:
    def test_each_dataset_gets_its_own_allocation_table(
        self,
        make_service,
        make_response,
        batched_payload,
        two_uploads,
    ) -> None:
        service, sessions = make_service(response=make_response(status_code=200, payload=batched_payload))
        phases: list[SubmissionPhase] = []

        state = service.run(
            two_uploads,
            entry_sizes=[4, None],
            on_transition=lambda current: phases.append(current.phase),
        )

        assert state.phase is SubmissionPhase.SUCCEEDED
        assert state.reason is None
        assert state.dataset_names == ("server-a", "server-b")
        assert isinstance(state.response, BatchedResponse)
        assert state.raw_payload == batched_payload
        assert len(state.allocation_tables) == 2
        by_name = {tagged.batch_name: tagged.table for tagged in state.allocation_tables}
        assert by_name["server-a"].rows == (("4", "10"), ("8", "5"))
        assert by_name["server-b"].rows == (("16", "3"),)
        assert phases == [SubmissionPhase.VALIDATING, SubmissionPhase.SENDING, SubmissionPhase.SUCCEEDED]

        sent = sessions[0].calls[0]["json"]
        assert [item["name"] for item in sent] == ["server-a", "server-b"]
        assert sent[0]["entry_size"] == 4
        assert "entry_size" not in sent[1]
        assert len(sent[0]["data"]) == 3

    def test_missing_report_still_succeeds(self, make_service, make_response, per_dataset_payload, two_uploads) -> None:
        per_dataset_payload["buddy_allocation_output"] = "allocator produced no results"
        service, _ = make_service(response=make_response(status_code=200, payload=per_dataset_payload))

        state = service.run(two_uploads)

        assert state.phase is SubmissionPhase.SUCCEEDED
        assert state.allocation_tables == ()

    def test_entry_sizes_ignored_when_not_collected(self, make_service, two_uploads) -> None:
        service, sessions = make_service(collect_entry_size=False)

        service.run(two_uploads, entry_sizes=[4, 8])

        assert all("entry_size" not in item for item in sessions[0].calls[0]["json"])


# ---------------------------------------------------------------------------
# Rejection and failure
# ---------------------------------------------------------------------------


class TestRejectedSubmission:
    def test_missing_file_never_calls_the_service(self, make_service, usage_csv) -> None:
        service, sessions = make_service()
        phases: list[SubmissionPhase] = []

        state = service.run(
            [RawUpload(name="a.csv", content=usage_csv()), None],
            on_transition=lambda current: phases.append(current.phase),
        )

        assert state.phase is SubmissionPhase.REJECTED
        assert state.reason == "Please upload all required CSV files: Dataset 2 is missing."
        assert sessions == []
        assert phases == [SubmissionPhase.VALIDATING, SubmissionPhase.REJECTED]

    def test_bad_columns_reason_names_the_file(self, make_service, make_csv) -> None:
        service, sessions = make_service()

        state = service.run([RawUpload(name="raw.csv", content=make_csv("Day,Count", "1,2"))])

        assert state.phase is SubmissionPhase.REJECTED
        assert "raw.csv" in (state.reason or "")
        assert sessions == []


class TestFailedSubmission:
    def test_http_error(self, make_service, make_response, two_uploads) -> None:
        service, _ = make_service(response=make_response(status_code=503, text="service unavailable"))

        state = service.run(two_uploads)

        assert state.phase is SubmissionPhase.FAILED
        assert state.outcome == HttpError(status_code=503, body_text="service unavailable")
        assert state.reason == "API request failed with status 503: service unavailable"
        assert state.response is None
        assert state.allocation_tables == ()

    def test_read_timeout(self, make_service, two_uploads) -> None:
        service, _ = make_service(error=requests.ReadTimeout("read timed out"))

        state = service.run(two_uploads)

        assert state.phase is SubmissionPhase.FAILED
        assert isinstance(state.outcome, TimedOut)

    def test_unexpected_response_shape(self, make_service, make_response, two_uploads) -> None:
        service, _ = make_service(response=make_response(status_code=200, payload=["unexpected"]))

        state = service.run(two_uploads)

        assert state.phase is SubmissionPhase.FAILED
        assert (state.reason or "").startswith("The prediction service returned an unexpected response")
        assert state.raw_payload == ["unexpected"]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestSubmissionState:
    def test_cannot_skip_validation(self) -> None:
        with pytest.raises(InvalidTransitionError):
            SubmissionState().advance(SubmissionPhase.SENDING)

    @pytest.mark.parametrize(
        "path",
        [
            [SubmissionPhase.VALIDATING, SubmissionPhase.REJECTED],
            [SubmissionPhase.VALIDATING, SubmissionPhase.SENDING, SubmissionPhase.FAILED],
        ],
    )
    def test_terminal_states_do_not_move(self, path: list[SubmissionPhase]) -> None:
        state = SubmissionState()
        for phase in path:
            state = state.advance(phase)

        assert not state.is_in_progress
        with pytest.raises(InvalidTransitionError):
            state.advance(SubmissionPhase.VALIDATING)

    def test_in_progress_phases(self) -> None:
        validating = SubmissionState().advance(SubmissionPhase.VALIDATING)
        assert validating.is_in_progress
        assert validating.advance(SubmissionPhase.SENDING).is_in_progress


class TestBuildSubmissionService:
    def test_uses_ingestion_settings(self) -> None:
        settings = ClientSettings(
            variant=CLASSIC_VARIANT,
            service=PredictionServiceSettings(endpoint_url="http://predict.test/predict"),
            ingestion=IngestionSettings(max_files=3, collect_entry_size=False),
        )

        service = build_submission_service(settings)

        assert service.max_files == 3
        assert service.collect_entry_size is False
        assert service.is_busy is False
