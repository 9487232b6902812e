"""Shared fixtures: CSV builders and an in-process stand-in for requests.Session."""

from __future__ import annotations

import threading
from typing import Any, Callable

import pytest

from buddy_client.config import PredictionServiceSettings
from buddy_client.connectors.prediction_connector import PredictionConnector

_INVALID_JSON = object()


class FakeResponse:
    def __init__(self, *, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is _INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """
    Records posts; optionally blocks until ``release`` is set, then answers.
    """

    def __init__(
        self,
        *,
        response: FakeResponse | None = None,
        error: Exception | None = None,
        release: threading.Event | None = None,
    ) -> None:
        self._response = response or FakeResponse(payload={})
        self._error = error
        self._release = release
        self.calls: list[dict[str, Any]] = []
        self.post_started = threading.Event()
        self.closed = False

    def post(self, url: str, json: Any = None, headers: Any = None, timeout: Any = None) -> FakeResponse:
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        self.post_started.set()
        if self._release is not None:
            self._release.wait(5)
        if self._error is not None:
            raise self._error
        return self._response

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def invalid_json() -> object:
    return _INVALID_JSON


@pytest.fixture()
def service_settings() -> PredictionServiceSettings:
    return PredictionServiceSettings(
        endpoint_url="http://predict.test/predict",
        max_wait_seconds=5.0,
        connect_timeout_seconds=2.0,
    )


@pytest.fixture()
def make_connector(service_settings: PredictionServiceSettings) -> Callable[..., tuple[PredictionConnector, list[FakeSession]]]:
    """
    Build a connector whose every call gets a new FakeSession from the given kwargs.
    """

    def _make(**session_kwargs: Any) -> tuple[PredictionConnector, list[FakeSession]]:
        sessions: list[FakeSession] = []

        def _factory() -> FakeSession:
            session = FakeSession(**session_kwargs)
            sessions.append(session)
            return session

        connector = PredictionConnector(settings=service_settings, session_factory=_factory)  # type: ignore[arg-type]
        return connector, sessions

    return _make


@pytest.fixture()
def make_response() -> Callable[..., FakeResponse]:
    return FakeResponse


def csv_bytes(*lines: str, bom: bool = False) -> bytes:
    text = "\n".join(lines) + "\n"
    data = text.encode("utf-8")
    return b"\xef\xbb\xbf" + data if bom else data


@pytest.fixture()
def usage_csv() -> Callable[..., bytes]:
    """
    Well-formed usage CSV with ``days`` rows.
    """

    def _make(days: int = 3, *, bom: bool = False) -> bytes:
        lines = ["Day No.,Number of entries"] + [f"{day},{day * 10}" for day in range(1, days + 1)]
        return csv_bytes(*lines, bom=bom)

    return _make


@pytest.fixture()
def make_csv() -> Callable[..., bytes]:
    return csv_bytes


def join_request_threads(timeout: float = 5.0) -> None:
    for thread in threading.enumerate():
        if thread.name == "prediction-request":
            thread.join(timeout)


@pytest.fixture()
def wait_for_request_threads() -> Callable[[], None]:
    return join_request_threads


REPORT_A = "Simulating buddy allocator\nResults:\nBlock Size\tCount\n4\t10\n8\t5\n"
REPORT_B = "Results:\nBlock Size\tCount\n16\t3\n"


@pytest.fixture()
def per_dataset_payload() -> dict[str, Any]:
    return {
        "predictions": [
            {
                "dataset": "server-a",
                "xgb_average": 12.5,
                "percentage": 62.5,
                "entry_size": 4,
                "results": {
                    "XGBoost": {"mse": 0.25, "predictions": [10, 12, 15]},
                    "LinearRegression": {"mse": 1.5, "predictions": [9, 11, 13]},
                },
            },
            {
                "dataset": "server-b",
                "xgb_average": 7.5,
                "percentage": 37.5,
                "results": {"XGBoost": {"mse": 0.5, "predictions": [7, 8]}},
            },
        ],
        "buddy_allocation_output": REPORT_A,
    }


@pytest.fixture()
def batched_payload() -> dict[str, Any]:
    """
    Two single-dataset batches, each named after its dataset with its own report.
    """

    return {
        "datasets": [{"name": "server-a"}, {"name": "server-b"}],
        "total_batches": 2,
        "batch_results": [
            {
                "batch_number": 1,
                "batch_name": "server-a",
                "datasets_in_batch": 1,
                "total_row_count": 3,
                "dataset_results": [
                    {
                        "dataset_name": "server-a",
                        "xgb_average": 12.5,
                        "entry_size": 4,
                        "row_count": 3,
                        "percentage": 100.0,
                        "weighted_value": 50.0,
                        "results": {"XGBoost": {"mse": 0.25, "predictions": [10, 12, 15]}},
                    }
                ],
                "batch_percentages": [100.0],
                "buddy_allocation_output": REPORT_A,
            },
            {
                "batch_number": 2,
                "batch_name": "server-b",
                "datasets_in_batch": 1,
                "total_row_count": 2,
                "dataset_results": [
                    {
                        "dataset_name": "server-b",
                        "xgb_average": 7.5,
                        "row_count": 2,
                        "percentage": 100.0,
                        "weighted_value": 7.5,
                        "results": {"XGBoost": {"mse": 0.5, "predictions": [7, 8]}},
                    }
                ],
                "batch_percentages": [100.0],
                "buddy_allocation_output": REPORT_B,
            },
        ],
        "all_buddy_outputs": [
            {"batch_number": 1, "batch_name": "server-a", "percentages": [100.0], "buddy_output": REPORT_A},
            {"batch_number": 2, "batch_name": "server-b", "percentages": [100.0], "buddy_output": REPORT_B},
        ],
    }
