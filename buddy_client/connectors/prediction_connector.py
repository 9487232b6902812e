"""
buddy_client/connectors/prediction_connector.py

HTTP connector for the remote prediction service.

One call is one POST. The connector waits for it against a wall-clock
deadline that does not depend on socket timeouts, and classifies the result
into exactly one Outcome. When the call is abandoned (deadline or
cancellation) its socket is shut down so the worker stops waiting, and a
response that still arrives is dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

import requests

from buddy_client.config import PredictionServiceSettings
from buddy_client.connectors.abortable_adapter import abort_session, abortable_session
from buddy_client.domain.outcomes import HttpError, Outcome, Success, TimedOut, TransportError
from buddy_client.logging_utils import log_event

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS = 0.25
_ABORT_JOIN_SECONDS = 1.0

CANCELLED_MESSAGE = "Request was cancelled before the prediction service responded."


class SubmissionInProgressError(RuntimeError):
    """
    Raised when a call is issued while another one is still outstanding.
    """


class CancellationToken:
    """
    Cooperative cancel signal shared by the caller and the connector.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class _PendingCall:
    """
    Slot for the single result of one in-flight POST.

    ``deliver`` and ``abandon`` race under a lock; whichever runs first wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._abandoned = False
        self.response: requests.Response | None = None
        self.error: Exception | None = None

    def deliver(
        self,
        *,
        response: requests.Response | None = None,
        error: Exception | None = None,
    ) -> bool:
        with self._lock:
            if self._abandoned:
                return False
            self.response = response
            self.error = error
            self._settled.set()
            return True

    def abandon(self) -> bool:
        """
        Mark the call abandoned. Returns False when a result already arrived.
        """

        with self._lock:
            if self._settled.is_set():
                return False
            self._abandoned = True
            return True

    def wait(self, timeout: float) -> bool:
        return self._settled.wait(timeout)


class PredictionConnector:
    """
    Issues prediction requests, one outstanding call at a time.
    """

    def __init__(
        self,
        *,
        settings: PredictionServiceSettings,
        session_factory: Callable[[], requests.Session] | None = None,
    ) -> None:
        self._endpoint_url = settings.endpoint_url
        self._max_wait_seconds = settings.max_wait_seconds
        self._connect_timeout_seconds = settings.connect_timeout_seconds
        self._session_factory = session_factory or abortable_session
        self._busy = threading.Lock()

    @property
    def is_busy(self) -> bool:
        return self._busy.locked()

    def submit(
        self,
        request: list[dict[str, Any]],
        *,
        endpoint: str | None = None,
        max_wait_seconds: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Outcome:
        """
        POST the request and return its classified outcome.

        Network failures never raise; they come back as TransportError,
        HttpError or TimedOut. No retry is attempted.

        Raises:
            SubmissionInProgressError: another call on this connector is
                still outstanding.
        """

        if not self._busy.acquire(blocking=False):
            raise SubmissionInProgressError("A prediction request is already in flight.")
        try:
            return self._submit(
                request=request,
                url=endpoint or self._endpoint_url,
                max_wait=max_wait_seconds if max_wait_seconds is not None else self._max_wait_seconds,
                token=cancel_token or CancellationToken(),
            )
        finally:
            self._busy.release()

    def _submit(
        self,
        *,
        request: list[dict[str, Any]],
        url: str,
        max_wait: float,
        token: CancellationToken,
    ) -> Outcome:
        session = self._session_factory()
        call = _PendingCall()
        started = time.monotonic()
        deadline = started + max_wait

        log_event(
            logger,
            logging.INFO,
            "prediction_request_started",
            url=url,
            datasets=len(request),
            max_wait_seconds=max_wait,
        )
        worker = threading.Thread(
            target=self._post,
            kwargs={
                "session": session,
                "url": url,
                "request": request,
                "timeout": (self._connect_timeout_seconds, max_wait),
                "call": call,
            },
            name="prediction-request",
            daemon=True,
        )
        worker.start()

        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining > 0 and not token.cancelled:
                    if call.wait(min(remaining, _POLL_INTERVAL_SECONDS)):
                        break
                    continue

                if not call.abandon():
                    break
                self._stop_worker(session=session, worker=worker, url=url)

                elapsed = time.monotonic() - started
                if token.cancelled:
                    log_event(logger, logging.WARNING, "prediction_request_cancelled", url=url, elapsed_seconds=elapsed)
                    return TransportError(message=CANCELLED_MESSAGE)

                log_event(logger, logging.WARNING, "prediction_request_timed_out", url=url, elapsed_seconds=elapsed)
                return TimedOut(max_wait_seconds=max_wait)

            return self._classify(call, url=url, max_wait=max_wait, elapsed=time.monotonic() - started)
        finally:
            session.close()

    @staticmethod
    def _stop_worker(*, session: requests.Session, worker: threading.Thread, url: str) -> None:
        abort_session(session)
        worker.join(_ABORT_JOIN_SECONDS)
        if worker.is_alive():
            logger.warning("Prediction worker still running after abort url=%s", url)

    @staticmethod
    def _post(
        *,
        session: requests.Session,
        url: str,
        request: list[dict[str, Any]],
        timeout: tuple[float, float],
        call: _PendingCall,
    ) -> None:
        try:
            response = session.post(
                url,
                json=request,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        except Exception as exc:  # noqa: BLE001 - handed to the waiting caller
            delivered = call.deliver(error=exc)
        else:
            delivered = call.deliver(response=response)

        if not delivered:
            log_event(logger, logging.INFO, "prediction_response_discarded", url=url)

    def _classify(
        self,
        call: _PendingCall,
        *,
        url: str,
        max_wait: float,
        elapsed: float,
    ) -> Outcome:
        if call.error is not None:
            return self._classify_error(call.error, url=url, max_wait=max_wait, elapsed=elapsed)

        response = call.response
        if response is None:
            return TransportError(message="Prediction service returned no response.")

        if not 200 <= response.status_code < 300:
            log_event(
                logger,
                logging.ERROR,
                "prediction_request_failed",
                url=url,
                status=response.status_code,
                elapsed_seconds=elapsed,
            )
            return HttpError(status_code=response.status_code, body_text=response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Prediction response was not valid JSON url=%s error=%s", url, exc)
            return TransportError(message=f"Prediction service response was not valid JSON: {exc}")

        log_event(
            logger,
            logging.INFO,
            "prediction_request_completed",
            url=url,
            status=response.status_code,
            elapsed_seconds=elapsed,
        )
        return Success(payload=payload, status_code=response.status_code)

    @staticmethod
    def _classify_error(
        error: Exception,
        *,
        url: str,
        max_wait: float,
        elapsed: float,
    ) -> Outcome:
        if isinstance(error, requests.ReadTimeout):
            log_event(logger, logging.WARNING, "prediction_request_timed_out", url=url, elapsed_seconds=elapsed)
            return TimedOut(max_wait_seconds=max_wait)

        if isinstance(error, requests.RequestException):
            log_event(
                logger,
                logging.ERROR,
                "prediction_request_transport_error",
                url=url,
                error=str(error),
                elapsed_seconds=elapsed,
            )
            return TransportError(message=f"Could not reach the prediction service at {url}: {error}")

        raise error
